from typing import Tuple

from .models import Option

# Order matters: it is the display order and the leader tie-break order.
OPTIONS: Tuple[Option, ...] = (
    Option(name="Red", color_value="#ef4444"),
    Option(name="Blue", color_value="#3b82f6"),
    Option(name="Green", color_value="#10b981"),
    Option(name="Purple", color_value="#8b5cf6"),
    Option(name="Orange", color_value="#f97316"),
    Option(name="Pink", color_value="#ec4899"),
    Option(name="Yellow", color_value="#eab308"),
    Option(name="Teal", color_value="#14b8a6"),
)


def option_names(options=OPTIONS) -> Tuple[str, ...]:
    return tuple(opt.name for opt in options)
