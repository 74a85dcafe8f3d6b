class PeerSupportError(Exception):
    """
    Base class for failures raised by the message core.
    """

class NotFoundError(PeerSupportError):
    """
    A membership record, its join time or a message document is absent.
    """
    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

class RecordValidationError(PeerSupportError):
    """
    A fetched document is missing one or more required fields.

    Raised per record by the decode step; callers skip the record rather
    than failing the whole batch.
    """
    def __init__(self, document_id: str, missing: list[str]):
        super().__init__(f"Document {document_id} is missing required fields: {', '.join(missing)}")
        self.document_id = document_id
        self.missing = missing

class TransportError(PeerSupportError):
    """
    The store could not be reached or the query failed.
    """
