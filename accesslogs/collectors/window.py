"""Time window bounding one access-log export."""

from datetime import UTC, date, datetime, time, timedelta

from pydantic import BaseModel, ConfigDict, model_validator


# Millisecond precision with a literal Z, as the API expects
ISO_FORMAT = "%Y-%m-%dT%H:%M:%S.000Z"


class FetchWindow(BaseModel):
    """Half-open UTC interval [after, before) of log records to export."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    after: datetime
    before: datetime

    @model_validator(mode="after")
    def validate_bounds(self) -> "FetchWindow":
        """Ensure both bounds are timezone-aware and ordered."""
        if self.after.tzinfo is None or self.before.tzinfo is None:
            msg = "Window bounds must be timezone-aware"
            raise ValueError(msg)
        if self.after >= self.before:
            msg = "Window start must precede window end"
            raise ValueError(msg)
        return self

    @classmethod
    def for_day(cls, day: date) -> "FetchWindow":
        """Window covering one UTC calendar day, midnight to midnight.

        Args:
            day: Calendar day to export.
        """
        start = datetime.combine(day, time(0, 0, 0), tzinfo=UTC)
        return cls(after=start, before=start + timedelta(days=1))

    @classmethod
    def previous_utc_day(cls, now: datetime | None = None) -> "FetchWindow":
        """Window covering yesterday in UTC.

        Args:
            now: Current timestamp (defaults to now).
        """
        now = now or datetime.now(UTC)
        today = now.astimezone(UTC).date()
        return cls.for_day(today - timedelta(days=1))

    @property
    def after_iso(self) -> str:
        """Window start as sent to the API."""
        return self.after.astimezone(UTC).strftime(ISO_FORMAT)

    @property
    def before_iso(self) -> str:
        """Window end as sent to the API."""
        return self.before.astimezone(UTC).strftime(ISO_FORMAT)

    @property
    def day_stamp(self) -> str:
        """Start day as YYYYMMDD, used to name output files."""
        return self.after.astimezone(UTC).strftime("%Y%m%d")
