"""Earliest-arrival journey planning over Cape Town's train and bus timetables."""

__version__ = "0.1.0"
