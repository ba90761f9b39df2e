"""
Injected output/error channels.

A Channel pairs a writable text stream with the capabilities the resolution
engine needs to know about it:

- terminates: writing a terminal message (help, version, "no files") to this
  channel may end the host process. Only the process entry point builds
  terminating channels; library and test callers use the default (False).
- colorful: faults and banners rendered to this channel keep their styles.

Rendering goes through rich; `console()` builds a Console bound to the stream
that never wraps lines, so banners and messages keep their layout whatever the
terminal width, and that never interprets markup in plain strings.
"""
import sys
from typing import NamedTuple, TextIO

from rich.console import Console


class Channel(NamedTuple):
    file: TextIO
    terminates: bool = False
    colorful: bool = False

    @classmethod
    def stdout(cls, *, colorful=False):
        return cls(sys.stdout, terminates=True, colorful=colorful)

    @classmethod
    def stderr(cls, *, colorful=False):
        return cls(sys.stderr, terminates=True, colorful=colorful)

    def console(self):
        return Console(
            file=self.file,
            color_system="auto" if self.colorful else None,
            markup=False,
            emoji=False,
            highlight=False,
            soft_wrap=True,
        )

    def puts(self, *renderables):
        """
        print each renderable (str, Text, Group, ...) on its own line.
        """
        console = self.console()
        for renderable in renderables:
            console.print(renderable)


def channel(object, /):
    """
    accept either a Channel or a bare text stream (wrapped as non-terminating).
    """
    if isinstance(object, Channel):
        return object
    if not hasattr(object, "write"):
        raise TypeError("channel() argument must be a Channel or a writable text stream")
    return Channel(object)


__all__ = (
    "Channel",
    "channel",
)
