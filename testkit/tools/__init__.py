"""Wrappers around external commands and APIs."""
