"""Tape parsing, one-minute bars and doji coloring."""
