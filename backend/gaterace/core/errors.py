# backend/gaterace/core/errors.py

from dataclasses import dataclass, field
from typing import Any, Dict


class RaceError(Exception):
    """Базовая ошибка движка гонки. Никогда не выходит за границу сервиса."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(RaceError):
    """Нет подходящего правила стадий / категория не найдена."""


class DataIncompleteError(RaceError):
    """Батч ещё не полностью заполнен результатами."""


class ValidationError(RaceError):
    """Невалидная запись результатов (дубли мест, гонщик вне заезда)."""


class LifecycleViolation(RaceError):
    status_code = 409


class NotFoundError(RaceError):
    status_code = 404


@dataclass
class Outcome:
    """
    Результат операции для вызывающего слоя:
      ok        -> всё применено
      warning   -> ничего не сломано, но пропущено (с пояснением)
      rejected  -> запись отклонена, состояние не менялось
    """

    status: str
    message: str | None = None
    data: Dict[str, Any] = field(default_factory=dict)
    status_code: int = 200

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @classmethod
    def success(cls, **data: Any) -> "Outcome":
        return cls(status="ok", data=data)

    @classmethod
    def warn(cls, message: str, **data: Any) -> "Outcome":
        return cls(status="warning", message=message, data=data)

    @classmethod
    def reject(cls, error: RaceError) -> "Outcome":
        return cls(status="rejected", message=error.message, status_code=error.status_code)

    def as_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"ok": self.ok}
        if self.status == "warning":
            payload["warning"] = self.message
        elif self.status == "rejected":
            payload["error"] = self.message
        payload.update(self.data)
        return payload
