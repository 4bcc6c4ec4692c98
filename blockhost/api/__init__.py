"""Provider-agnostic API: data model and lifecycle contracts."""

from .model import Action as Action
from .model import BootScriptRecord as BootScriptRecord
from .model import CreateRequest as CreateRequest
from .model import InstanceRecord as InstanceRecord
from .model import OperationStatus as OperationStatus
from .model import ProvisioningState as ProvisioningState
from .model import ResourceDescriptor as ResourceDescriptor
from .model import ResourceResult as ResourceResult
from .model import Role as Role
from .model import SSHKeyRecord as SSHKeyRecord
from .model import VolumeRecord as VolumeRecord
from .provider import ProviderConfig as ProviderConfig
from .provider import ServerProvider as ServerProvider
