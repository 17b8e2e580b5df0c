import uuid


def long_uid() -> str:
    return str(uuid.uuid4())


def client_token() -> str:
    """Returns a fresh idempotency token for a mutating API call."""
    return f"smsvoice-{long_uid()}"
