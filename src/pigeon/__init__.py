"""Pigeon: native messaging host that types browser code selections into tmux."""

__version__ = "0.1.0"
