"""Alert event model emitted by the threshold evaluator."""

import datetime

from pydantic import BaseModel, ConfigDict

from Price_Pulse.models.enums import TargetKind


class AlertEvent(BaseModel):
    """A single threshold crossing, ready for the notification sinks."""

    model_config = ConfigDict(frozen=True)

    kind: TargetKind
    price: float
    threshold: float
    title: str
    body: str
    fired_at: datetime.datetime
