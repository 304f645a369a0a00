# salon/core/__init__.py


def overlaps(a_start, a_end, b_start, b_end) -> bool:
    # Half-open intervals: touching endpoints do not overlap
    return a_start < b_end and b_start < a_end
