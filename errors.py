class AlbumError(Exception):
    """Base error for a failed album resolution, rendered as {"error": message}"""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(AlbumError):
    status_code = 400


class UpstreamError(AlbumError):
    """The shared streams service answered with a non-2xx status or garbage"""

    status_code = 502

    def __init__(self, message: str = "Upstream service error"):
        super().__init__(message)


class UpstreamTimeoutError(AlbumError):
    status_code = 504

    def __init__(self, message: str = "Request timed out"):
        super().__init__(message)


class NoPhotosFoundError(AlbumError):
    status_code = 404

    def __init__(self, message: str = "No photos found in album"):
        super().__init__(message)


class NoValidDerivativesError(AlbumError):
    status_code = 404

    def __init__(self, message: str = "No valid photos found"):
        super().__init__(message)


class NoValidMediaUrlsError(AlbumError):
    status_code = 404

    def __init__(self, message: str = "No valid media URLs found"):
        super().__init__(message)
