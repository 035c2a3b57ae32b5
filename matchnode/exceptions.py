"""
Domain exceptions raised by the services and turned into JSON errors by main.py
"""


class MatchNodeError(Exception):
    """Base class for domain errors"""
    status_code = 400
    code = "bad_request"


class NotFoundError(MatchNodeError):
    """Raised when a referenced row does not exist"""
    status_code = 404
    code = "not_found"

    def __init__(self, what: str):
        self.what = what
        super().__init__(f"{what} not found")


class AlbumNotSelectedError(MatchNodeError):
    """Raised when matching is attempted without an active album"""

    def __init__(self):
        super().__init__("Select an active album to find matches")


class StickerNotInAlbumError(MatchNodeError):
    """Raised when a sticker does not belong to the expected album"""

    def __init__(self, sticker_id: int, album_id: int):
        self.sticker_id = sticker_id
        self.album_id = album_id
        super().__init__(
            f"Sticker {sticker_id} does not belong to album {album_id}")


class InvalidStickerStatusError(MatchNodeError, ValueError):
    """Raised for a status outside missing/owned/duplicate"""

    def __init__(self, value: str):
        self.value = value
        super().__init__(
            f"Invalid sticker status '{value}'. Use missing, owned or duplicate.")


class InvalidMatchError(MatchNodeError):
    """Raised when two collectors cannot be matched"""
    pass
