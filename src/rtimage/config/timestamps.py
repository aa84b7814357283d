"""Output timestamp parsing for reproducible archives."""

from datetime import datetime, timezone
from typing import Optional

from ..errors import InvalidOutputTimestamp

# Zip entries cannot represent times outside this window
MIN_TIMESTAMP = datetime(1980, 1, 1, 0, 0, 2, tzinfo=timezone.utc)
MAX_TIMESTAMP = datetime(2099, 12, 31, 23, 59, 59, tzinfo=timezone.utc)


def parse_output_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an output_timestamp setting.

    Args:
        value: Epoch seconds ("1570300662") or ISO-8601 with offset
            ("2019-10-05T18:37:42Z"). None, "" or a single character
            disables reproducible timestamps.

    Returns:
        UTC datetime truncated to seconds, or None when disabled

    Raises:
        InvalidOutputTimestamp: If the value is unparseable or out of range
    """
    if value is None:
        return None
    value = value.strip()
    if len(value) < 2:
        return None

    if value.isdigit():
        try:
            instant = datetime.fromtimestamp(int(value), tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise InvalidOutputTimestamp(f"Invalid output timestamp '{value}': {e}") from e
    else:
        iso = value[:-1] + "+00:00" if value.endswith(("Z", "z")) else value
        try:
            instant = datetime.fromisoformat(iso)
        except ValueError as e:
            raise InvalidOutputTimestamp(
                f"Invalid output timestamp '{value}': expected ISO-8601 with offset "
                "(e.g. 2019-10-05T18:37:42Z) or epoch seconds"
            ) from e
        if instant.tzinfo is None:
            raise InvalidOutputTimestamp(
                f"Invalid output timestamp '{value}': missing time zone offset"
            )
        instant = instant.astimezone(timezone.utc)

    instant = instant.replace(microsecond=0)
    if instant < MIN_TIMESTAMP or instant > MAX_TIMESTAMP:
        raise InvalidOutputTimestamp(
            f"Output timestamp '{value}' is outside the supported range "
            f"{MIN_TIMESTAMP.isoformat()} .. {MAX_TIMESTAMP.isoformat()}"
        )
    return instant
