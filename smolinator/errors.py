class SmolinatorError(Exception):
    pass


class ContainerParseError(SmolinatorError):
    """The input asset is unreadable, malformed or references missing data."""


class UnsupportedPixelFormatError(SmolinatorError):
    """An image uses a channel layout the transcoder cannot handle."""


class PixelBufferError(SmolinatorError):
    """Raw pixel byte count does not match the declared dimensions."""


class EncodeError(SmolinatorError):
    pass


class OutputWriteError(SmolinatorError):
    pass
