from .event import Event, EventType
from .event_value import EventValue
from .app_setting import AppSetting

__all__ = [
    "Event",
    "EventType",
    "EventValue",
    "AppSetting",
]
