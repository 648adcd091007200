def format_float_clean(value):
    """
    Показывает:
      9.0 → 9
      8.5 → 8.5
      None → —
    """
    if value is None:
        return "—"

    try:
        f = float(value)
    except (TypeError, ValueError):
        return value

    if f.is_integer():
        return str(int(f))
    return str(round(f, 3)).rstrip("0").rstrip(".")


def finish_label(status, finish_order):
    """Ячейка заезда: место, DNF/DNS или пусто."""
    if status is None:
        return ""
    if status == "FINISH":
        return format_float_clean(finish_order)
    return status
