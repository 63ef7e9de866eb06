import math
import random
import datetime

def utcnow() -> datetime.datetime:
    """Naive UTC timestamp, the form every datetime column is stored in."""
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)

def to_naive_utc(value: datetime.datetime) -> datetime.datetime:
    if value.tzinfo is not None:
        value = value.astimezone(datetime.timezone.utc).replace(tzinfo=None)
    return value

def hours_until(until: datetime.datetime, now: datetime.datetime) -> int:
    """Whole hours remaining, rounded up: 90 minutes reports as 2."""
    return math.ceil((until - now).total_seconds() / 3600)

def minutes_between(start: datetime.datetime, end: datetime.datetime) -> int:
    return math.floor((end - start).total_seconds() / 60)

def make_tracking_number(now: datetime.datetime = None) -> str:
    """BR-YYYYMMDD-HHMMSS-NNNN"""
    now = now or utcnow()
    return f"BR-{now:%Y%m%d-%H%M%S}-{random.randint(0, 9999):04d}"
