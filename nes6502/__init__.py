"""A MOS 6502 processor emulator core: decoding, execution and cycle counting."""

__version__ = "0.1.0"
__all__ = ["addressing", "cpu", "execute", "opcodes", "processor"]