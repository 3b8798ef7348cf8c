
class ListMatchError(Exception):
    """Base for every error reported back to a client as a failed request."""


class BadRequest(ListMatchError):
    pass


class NameTaken(ListMatchError):
    def __init__(self, name: str):
        super().__init__("that name's taken")
        self.name = name


class DecodeError(ListMatchError):
    pass


class TruncatedRecord(DecodeError):
    def __init__(self, leftover: int):
        super().__init__(f"body ended {leftover} bytes into a record")
        self.leftover = leftover


class TooManyRecords(DecodeError):
    def __init__(self, limit: int):
        super().__init__(f"too many hashes (limit {limit})")
        self.limit = limit


class NotFound(ListMatchError):
    def __init__(self, name: str, message: str = "upload missing"):
        super().__init__(message)
        self.name = name


class UploadEmpty(NotFound):
    def __init__(self, name: str):
        super().__init__(name, "upload empty")


class QueryBudgetExceeded(ListMatchError):
    def __init__(self, name: str, count: int, limit: int):
        super().__init__("too many matches")
        self.name = name
        self.count = count
        self.limit = limit


class ClientError(Exception):
    """Raised by the command-line client for problems on our side."""


class ServerError(ClientError):
    def __init__(self, status: int, body: str):
        super().__init__(f"server returned bad status {status}: {body}")
        self.status = status
        self.body = body
