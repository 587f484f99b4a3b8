"""Exception hierarchy shared by the engine and its storage collaborators."""


class TileSearchError(Exception):
    """Base class for all tilesearch failures."""


class StorageError(TileSearchError):
    """Raised when a shard or document fetch/write fails."""


class MalformedDataError(StorageError):
    """Raised when a stored payload cannot be parsed into the expected shape."""
