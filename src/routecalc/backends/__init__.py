"""Run backends."""

from routecalc.backends.emu import EmuBackend

__all__ = ["EmuBackend"]
