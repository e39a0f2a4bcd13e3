class InvalidArgument(ValueError):
    """Malformed numeric input to the pick engine (window size, threshold, rate)."""


class FootballDataError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None, endpoint: str | None = None):
        msg = message
        if status_code is not None:
            msg += f" status={status_code}"
        if endpoint:
            msg += f" endpoint={endpoint}"
        super().__init__(msg)
        self.status_code = status_code
        self.endpoint = endpoint
