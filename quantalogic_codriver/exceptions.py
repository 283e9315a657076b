from typing import Any

_NO_ITEM = object()


class CodriverError(Exception):
    pass


class ProtocolError(CodriverError):
    def __init__(self, message: str, item: Any = _NO_ITEM) -> None:
        super().__init__(message)
        self.message = message
        self.item: Any = None if item is _NO_ITEM else item
        self.has_item: bool = item is not _NO_ITEM

    def __str__(self):
        if not self.has_item:
            return self.message
        return f"{self.message}: {type(self.item).__name__} {self.item!r}"


class AlreadySettledError(CodriverError):
    pass


class NotSettledError(CodriverError):
    pass


class RoutineFinishedError(CodriverError):
    pass


class DriverStateError(CodriverError):
    pass
