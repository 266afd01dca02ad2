class PrintCanvasError(Exception):
    """Base class for errors raised by the engine."""


class ResourceLoadError(PrintCanvasError):
    """An image or mesh resource could not be fetched or decoded."""

    def __init__(self, url: str, reason: str = "") -> None:
        self.url = url
        self.reason = reason
        msg = f"Failed to load resource {url!r}"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)


class InteractionStateError(PrintCanvasError):
    """A mutation entry point was called while another interaction is active."""


class ElementNotFoundError(PrintCanvasError, KeyError):
    """No design element with the requested id exists in the scene."""

    def __init__(self, element_id) -> None:
        self.element_id = element_id
        super().__init__(f"No design element with id {element_id!r}")

    def __str__(self) -> str:
        return str(self.args[0])
