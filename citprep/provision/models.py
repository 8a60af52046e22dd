"""What to provision and what came of it"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Sequence, Tuple, Union


class Kind(Enum):
	"""The kinds of resource we know how to provision"""

	resource_group = "resource-group"
	managed_identity = "managed-identity"
	role_definition = "role-definition"
	role_assignment = "role-assignment"
	gallery = "gallery"
	gallery_image_definition = "gallery-image-definition"


class Outcome(Enum):
	created = "created"
	existed = "already-existed"
	failed = "failed"


class FailureReason(Enum):
	api_error = "api-error"
	missing_dependency = "missing-dependency"


@dataclass(frozen=True)
class ResourceGroupPayload:
	location: str


@dataclass(frozen=True)
class IdentityPayload:
	location: str
	settle_delay: float = 0.0  # seconds to wait after creating, for the principal to reach the directory


@dataclass(frozen=True)
class RoleDefinitionPayload:
	actions: Tuple[str, ...]
	description: str = ""
	assignable_scopes: Tuple[str, ...] = ()
	requires_virtual_network: bool = False


@dataclass(frozen=True)
class RoleAssignmentPayload:
	"""Binds the principal of one spec to the role of another. Both are spec keys"""

	identity: str
	role_definition: str
	principal_type: str = "ServicePrincipal"


@dataclass(frozen=True)
class GalleryPayload:
	location: str
	description: str = ""


@dataclass(frozen=True)
class ImageDefinitionPayload:
	location: str
	publisher: str
	offer: str
	sku: str
	os_type: str = "Windows"
	os_state: str = "Generalized"
	hyper_v_generation: str = "V2"
	security_type: Optional[str] = None


Payload = Union[ResourceGroupPayload, IdentityPayload, RoleDefinitionPayload, RoleAssignmentPayload, GalleryPayload, ImageDefinitionPayload]


@dataclass(frozen=True)
class ResourceSpec:
	"""
	One thing to provision.

	`key` identifies the spec within a run; `depends_on` names the keys of specs which must be resolved first.
	`scope` is the Azure resource ID the resource lives under.
	"""

	key: str
	kind: Kind
	name: str
	scope: str
	payload: Payload
	depends_on: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ProvisioningResult:
	"""The result of provisioning a single ResourceSpec"""

	key: str
	kind: Kind
	name: str
	outcome: Outcome
	identifier: Optional[str] = None
	details: Dict[str, str] = field(default_factory=dict)
	reason: Optional[FailureReason] = None
	error: Optional[str] = None
	drift: Tuple[str, ...] = ()

	@property
	def ok(self) -> bool:
		return self.outcome is not Outcome.failed

	@classmethod
	def failure(cls, spec: ResourceSpec, reason: FailureReason, error: str) -> ProvisioningResult:
		return cls(spec.key, spec.kind, spec.name, Outcome.failed, reason=reason, error=error)


@dataclass(frozen=True)
class Skipped:
	"""An optional feature which was not requested"""

	feature: str
	reason: str


@dataclass(frozen=True)
class ProvisioningSummary:
	"""Everything that happened in a run, in the order it happened"""

	results: Sequence[ProvisioningResult]
	skipped: Sequence[Skipped] = ()
	providers: Dict[str, str] = field(default_factory=dict)

	@property
	def ok(self) -> bool:
		return all(r.ok for r in self.results)

	@property
	def failed(self) -> Sequence[ProvisioningResult]:
		return [r for r in self.results if not r.ok]

	def identifiers(self) -> Dict[str, str]:
		"""The resolved identifier of every successful spec, by key"""
		return {r.key: r.identifier for r in self.results if r.ok and r.identifier is not None}

	def __getitem__(self, key: str) -> ProvisioningResult:
		for r in self.results:
			if r.key == key:
				return r
		raise KeyError(key)
