"""Tick tape to one-minute bars, with a scrubbable replay clock."""
