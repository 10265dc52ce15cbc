"""Mercato Infra TaskIQ: background task broker factory."""

from mercato.infra.taskiq.broker import broker, get_broker, get_result_backend
from mercato.infra.taskiq.settings import TaskIQSettings, get_taskiq_settings

__all__ = [
    "TaskIQSettings",
    "broker",
    "get_broker",
    "get_result_backend",
    "get_taskiq_settings",
]
