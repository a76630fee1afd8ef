from csvjson.errors import EmptySourceError
from csvjson.records.contracts import ByteRange


def plan_byte_ranges(
    total_bytes: int,
    max_parallelism: int,
    min_bytes_per_unit: int,
) -> list[ByteRange]:
    """Split ``[0, total_bytes - 1]`` into contiguous ranges, one per worker.

    Don't create more ranges than makes sense for the size (tiny ranges waste
    a read session each): every range but the last gets exactly
    ``total_bytes // n`` bytes and the last absorbs the remainder.
    """
    if total_bytes <= 0:
        msg = f"Cannot plan ranges for an empty source ({total_bytes} bytes)"
        raise EmptySourceError(msg)

    min_bytes_per_unit = max(1, min_bytes_per_unit)
    max_parallelism = max(1, max_parallelism)

    if total_bytes <= min_bytes_per_unit:
        return [ByteRange(0, 0, total_bytes - 1)]

    n_units = total_bytes // min_bytes_per_unit
    if n_units == 1:
        return [ByteRange(0, 0, total_bytes - 1)]

    n_units = min(n_units, max_parallelism)
    step = total_bytes // n_units

    ranges: list[ByteRange] = []
    start = 0
    for index in range(n_units - 1):
        ranges.append(ByteRange(index, start, start + step - 1))
        start += step
    ranges.append(ByteRange(n_units - 1, start, total_bytes - 1))
    return ranges
