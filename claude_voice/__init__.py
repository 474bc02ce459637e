"""
claude-voice - talk to Claude Code.

Speak a request, have it run through `claude -p`, and hear the answer,
summarized when it is too long to listen to.
"""

__version__ = "0.1.0"
