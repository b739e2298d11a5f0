class RenderError(Exception):
    """Raised when a document cannot be turned into HTML at all."""


class NestedRenderError(RenderError):
    """Raised when a nested (theorem body) render is refused or fails."""


class SerializationError(RenderError):
    """
    Raised when the transformed tree is not fit for serialization.
    Indicates a broken pass, not bad input.
    """
