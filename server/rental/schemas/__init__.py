"""Pydantic schemas for request/response validation."""

from .booking import *  # noqa: F403
from .common import *  # noqa: F403
from .equipment import *  # noqa: F403
from .health import *  # noqa: F403
from .incident import *  # noqa: F403
from .insurance import *  # noqa: F403
from .pricing import *  # noqa: F403
