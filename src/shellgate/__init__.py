"""shellgate -- Telnet gateway to a local interactive shell.

This package bridges a remote, character-at-a-time telnet terminal to a
locally spawned shell process. Line editing (cursor motion, insert and
overwrite, history recall) happens on the server side, and the process's
stdout and stderr are interleaved onto the single telnet channel without
scrambling partial output.
"""

__version__ = "0.1.0"
