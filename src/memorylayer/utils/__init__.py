from memorylayer.utils.time import hours_between, utc_now

__all__ = ["utc_now", "hours_between"]
