"""Wall-clock time source shared by the login guard and token issuer"""

import datetime


def utcnow() -> datetime.datetime:
    """Current UTC time as a naive datetime, matching the stored columns."""
    return datetime.datetime.now(datetime.UTC).replace(tzinfo=None)
