"""termbridge -- Browser terminal backend for a web IDE.

This package gives browser clients an interactive shell over a WebSocket
(one real shell process per connection), a one-shot command execution
endpoint, and a small sandboxed channel for file commands confined to a
project root.
"""

__version__ = "0.1.0"
