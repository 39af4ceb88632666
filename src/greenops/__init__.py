"""greenops - manage cluster registrations and agent API keys declaratively."""

from .client import ApiClient as ApiClient
from .cluster import Cluster as Cluster
from .context import Context as Context
from .errors import ApiError as ApiError
from .errors import DecodeError as DecodeError
from .errors import GreenOpsError as GreenOpsError
from .lifecycle import Absent as Absent
from .lifecycle import Ensure as Ensure
from .lifecycle import LifecycleOp as LifecycleOp
from .lifecycle import Present as Present
from .plans import Plan as Plan
from .provider import Provider as Provider
from .resource import Resource as Resource
from .resource import resource as resource
from .state import State as State
from .workspace import Workspace as Workspace
from .workspace import scan as scan

__version__ = "0.1.0"
