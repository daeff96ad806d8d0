"""
Request-scoped errors. Route handlers turn these into `{"error": message}`
responses with the attached status code.
"""


class FeedbackError(Exception):
    status_code = 500

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class PermissionDenied(FeedbackError):
    status_code = 403


class MalformedInput(FeedbackError):
    status_code = 400


class MissingParameter(FeedbackError):
    status_code = 400


class InvalidParameter(FeedbackError):
    status_code = 400


class QueryError(FeedbackError):
    status_code = 500
