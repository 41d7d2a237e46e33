from .dates import iso_utc_timestamp

__all__ = ["iso_utc_timestamp"]
