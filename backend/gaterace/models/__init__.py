# backend/gaterace/models/__init__.py

from .event import Event  # noqa: F401
from .category import Category, StageRule  # noqa: F401
from .rider import Rider, RiderExtraCategory  # noqa: F401
from .heat import Heat, HeatRider, GateAssignment, HeatResult  # noqa: F401
from .stage import StageResult  # noqa: F401
from .penalty import RiderPenalty  # noqa: F401
