"""How to ensure each kind of resource exists"""
from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Mapping, Optional, Sequence, cast

import requests

from citprep.arm.gallery import Galleries, Gallery, GalleryImage, GalleryImageFeature, GalleryImageIdentifier, GalleryImages
from citprep.arm.groups import ResourceGroups
from citprep.arm.identity import Identities, Identity
from citprep.arm.network import VirtualNetworks
from citprep.arm.roles import Permission, RoleAssignments, RoleDefinition, RoleDefinitions
from citprep.azrest.azrest import AzRest, rid_eq
from citprep.azrest.models import AzureError
from citprep.provision.models import (
	FailureReason,
	GalleryPayload,
	IdentityPayload,
	ImageDefinitionPayload,
	Kind,
	Outcome,
	ProvisioningResult,
	ResourceGroupPayload,
	ResourceSpec,
	RoleAssignmentPayload,
	RoleDefinitionPayload,
)
from citprep.rid import rid

l = logging.getLogger(__name__)

Resolved = Mapping[str, ProvisioningResult]


def fmt_spec(spec: ResourceSpec) -> str:
	return f"{spec.kind.value} '{spec.name}'"


def describe_error(e: Exception) -> str:
	if isinstance(e, AzureError):
		return f"{e.error.code}: {e.error.message}"
	return f"{type(e).__name__}: {e}"


def same_location(a: Optional[str], b: Optional[str]) -> bool:
	"""Azure normalises `East US` to `eastus`"""

	def norm(s: Optional[str]) -> str:
		return (s or "").replace(" ", "").lower()

	return norm(a) == norm(b)


def differs(field: str, desired, actual) -> List[str]:
	if desired == actual:
		return []
	return [f"{field} is {actual!r}, wanted {desired!r}"]


def rg_of(scope: str) -> rid.ResourceGroup:
	"""The resource group a scope names"""
	obj = rid.parse(scope)
	if not isinstance(obj, rid.ResourceGroup):
		raise ValueError(f"expected a resource group scope, found {scope!r}")
	return obj


class Step(ABC):
	"""
	Ensure a single kind of resource exists

	A Step never raises for a failure talking to Azure; it returns a failed result instead,
	so that the rest of the run can carry on.
	"""

	kind: Kind

	def ensure(self, spec: ResourceSpec, resolved: Resolved) -> ProvisioningResult:
		try:
			return self._ensure(spec, resolved)
		except (AzureError, requests.RequestException) as e:
			detail = describe_error(e)
			l.error(f"{fmt_spec(spec)}: failed: {detail}")
			return ProvisioningResult.failure(spec, FailureReason.api_error, detail)

	@abstractmethod
	def _ensure(self, spec: ResourceSpec, resolved: Resolved) -> ProvisioningResult:
		...

	@staticmethod
	def existed(spec: ResourceSpec, identifier: Optional[str], drift: Sequence[str] = (), details: Optional[Dict[str, str]] = None) -> ProvisioningResult:
		l.info(f"{fmt_spec(spec)}: already exists id={identifier}")
		for d in drift:
			l.warning(f"{fmt_spec(spec)}: differs from the requested configuration and was left unchanged: {d}")
		return ProvisioningResult(spec.key, spec.kind, spec.name, Outcome.existed, identifier, details or {}, drift=tuple(drift))

	@staticmethod
	def created(spec: ResourceSpec, identifier: Optional[str], details: Optional[Dict[str, str]] = None) -> ProvisioningResult:
		l.info(f"{fmt_spec(spec)}: created id={identifier}")
		return ProvisioningResult(spec.key, spec.kind, spec.name, Outcome.created, identifier, details or {})


class ResourceGroupStep(Step):
	kind = Kind.resource_group

	def __init__(self, azrest: AzRest):
		self.groups = ResourceGroups(azrest)

	def _ensure(self, spec: ResourceSpec, resolved: Resolved) -> ProvisioningResult:
		payload = cast(ResourceGroupPayload, spec.payload)
		sub = cast(rid.Subscription, rid.parse(spec.scope))

		existing = self.groups.get(sub.uuid, spec.name)
		if existing:
			drift = [] if same_location(payload.location, existing.location) else differs("location", payload.location, existing.location)
			return self.existed(spec, existing.rid, drift)

		l.info(f"{fmt_spec(spec)}: creating in {payload.location}")
		created = self.groups.create(sub.uuid, spec.name, payload.location)
		return self.created(spec, created.rid)


class ManagedIdentityStep(Step):
	"""The identifier of an identity is its principal ID, which is what gets role assignments"""

	kind = Kind.managed_identity

	def __init__(self, azrest: AzRest, sleep: Callable[[float], None] = time.sleep):
		self.identities = Identities(azrest)
		self.sleep = sleep

	@staticmethod
	def _details(identity: Identity) -> Dict[str, str]:
		details = {"resourceId": identity.rid or ""}
		if identity.properties and identity.properties.clientId:
			details["clientId"] = identity.properties.clientId
		return details

	@staticmethod
	def _principal(identity: Optional[Identity]) -> Optional[str]:
		if identity is None or identity.properties is None:
			return None
		return identity.properties.principalId

	def _ensure(self, spec: ResourceSpec, resolved: Resolved) -> ProvisioningResult:
		payload = cast(IdentityPayload, spec.payload)
		rg = rg_of(spec.scope)

		existing = self.identities.get(rg.sub.uuid, rg.name, spec.name)
		if existing:
			principal = self._principal(existing)
			if principal is None:
				msg = "identity exists but has no principal ID"
				l.error(f"{fmt_spec(spec)}: {msg}")
				return ProvisioningResult.failure(spec, FailureReason.api_error, msg)
			drift = [] if same_location(payload.location, existing.location) else differs("location", payload.location, existing.location)
			return self.existed(spec, principal, drift, self._details(existing))

		l.info(f"{fmt_spec(spec)}: creating in {payload.location}")
		self.identities.create(rg.sub.uuid, rg.name, spec.name, payload.location)
		if payload.settle_delay:
			l.info(f"{fmt_spec(spec)}: waiting {payload.settle_delay}s for the identity to propagate")
			self.sleep(payload.settle_delay)

		identity = self.identities.get(rg.sub.uuid, rg.name, spec.name)
		principal = self._principal(identity)
		if identity is None or principal is None:
			msg = "identity was created but could not be read back with a principal ID"
			l.error(f"{fmt_spec(spec)}: {msg}")
			return ProvisioningResult.failure(spec, FailureReason.api_error, msg)
		return self.created(spec, principal, self._details(identity))


class RoleDefinitionStep(Step):
	kind = Kind.role_definition

	def __init__(self, azrest: AzRest):
		self.role_definitions = RoleDefinitions(azrest)
		self.virtual_networks = VirtualNetworks(azrest)

	@staticmethod
	def _drift(payload: RoleDefinitionPayload, existing: RoleDefinition) -> List[str]:
		drift = []
		if set(payload.actions) != set(existing.actions):
			drift.append(f"actions are {sorted(existing.actions)}, wanted {sorted(payload.actions)}")
		missing_scopes = [s for s in payload.assignable_scopes if not any(rid_eq(s, e) for e in existing.properties.assignableScopes)]
		if missing_scopes:
			drift.append(f"not assignable at {missing_scopes}")
		return drift

	def _check_virtual_networks(self, spec: ResourceSpec):
		rg = rg_of(spec.scope)
		vnets = self.virtual_networks.list(rg.sub.uuid, rg.name)
		if vnets:
			l.info(f"{fmt_spec(spec)}: found virtual networks {[v.name for v in vnets]} in {rg.name}")
		else:
			l.warning(f"{fmt_spec(spec)}: found no virtual networks in {rg.name}")

	def _ensure(self, spec: ResourceSpec, resolved: Resolved) -> ProvisioningResult:
		payload = cast(RoleDefinitionPayload, spec.payload)
		if payload.requires_virtual_network:
			self._check_virtual_networks(spec)

		existing = self.role_definitions.find(spec.scope, spec.name)
		if existing:
			return self.existed(spec, existing.rid, self._drift(payload, existing))

		l.info(f"{fmt_spec(spec)}: creating at {spec.scope}")
		created = self.role_definitions.create(
			spec.scope,
			RoleDefinition.Properties(
				roleName=spec.name,
				description=payload.description,
				permissions=[Permission(actions=list(payload.actions))],
				assignableScopes=list(payload.assignable_scopes),
			),
		)
		return self.created(spec, created.rid)


class RoleAssignmentStep(Step):
	"""Assign the role from one resolved spec to the principal from another"""

	kind = Kind.role_assignment

	def __init__(self, azrest: AzRest):
		self.role_assignments = RoleAssignments(azrest)

	def _ensure(self, spec: ResourceSpec, resolved: Resolved) -> ProvisioningResult:
		payload = cast(RoleAssignmentPayload, spec.payload)
		principal_id = resolved[payload.identity].identifier
		role_definition_id = resolved[payload.role_definition].identifier
		if principal_id is None or role_definition_id is None:
			msg = f"{payload.identity} and {payload.role_definition} must both resolve to an identifier"
			l.error(f"{fmt_spec(spec)}: not attempted, {msg}")
			return ProvisioningResult.failure(spec, FailureReason.missing_dependency, msg)

		existing = self.role_assignments.find(spec.scope, principal_id, role_definition_id)
		if existing:
			return self.existed(spec, existing.rid)

		l.info(f"{fmt_spec(spec)}: assigning at {spec.scope}")
		created = self.role_assignments.create(spec.scope, principal_id, role_definition_id, payload.principal_type)
		return self.created(spec, created.rid)


class GalleryStep(Step):
	kind = Kind.gallery

	def __init__(self, azrest: AzRest):
		self.galleries = Galleries(azrest)

	def _ensure(self, spec: ResourceSpec, resolved: Resolved) -> ProvisioningResult:
		payload = cast(GalleryPayload, spec.payload)
		rg = rg_of(spec.scope)

		existing = self.galleries.get(rg.sub.uuid, rg.name, spec.name)
		if existing:
			drift = [] if same_location(payload.location, existing.location) else differs("location", payload.location, existing.location)
			return self.existed(spec, existing.rid, drift)

		l.info(f"{fmt_spec(spec)}: creating in {payload.location}")
		gallery = Gallery(location=payload.location, properties=Gallery.Properties(description=payload.description or None))
		created = self.galleries.create(rg.sub.uuid, rg.name, spec.name, gallery)
		return self.created(spec, created.rid)


class GalleryImageDefinitionStep(Step):
	kind = Kind.gallery_image_definition

	def __init__(self, azrest: AzRest):
		self.images = GalleryImages(azrest)

	@staticmethod
	def _drift(payload: ImageDefinitionPayload, existing: GalleryImage) -> List[str]:
		props = existing.properties
		drift = [] if same_location(payload.location, existing.location) else differs("location", payload.location, existing.location)
		drift += differs("publisher", payload.publisher, props.identifier.publisher)
		drift += differs("offer", payload.offer, props.identifier.offer)
		drift += differs("sku", payload.sku, props.identifier.sku)
		drift += differs("osType", payload.os_type, props.osType)
		drift += differs("hyperVGeneration", payload.hyper_v_generation, props.hyperVGeneration)
		return drift

	def _ensure(self, spec: ResourceSpec, resolved: Resolved) -> ProvisioningResult:
		payload = cast(ImageDefinitionPayload, spec.payload)
		gallery = cast(rid.Resource, rid.parse(spec.scope))
		if gallery.rg is None:
			raise ValueError(f"expected a gallery scope, found {spec.scope!r}")

		existing = self.images.get(gallery.sub.uuid, gallery.rg.name, gallery.name, spec.name)
		if existing:
			return self.existed(spec, existing.rid, self._drift(payload, existing))

		l.info(f"{fmt_spec(spec)}: creating in gallery {gallery.name}")
		image = GalleryImage(
			location=payload.location,
			properties=GalleryImage.Properties(
				osType=payload.os_type,
				osState=payload.os_state,
				hyperVGeneration=payload.hyper_v_generation,
				identifier=GalleryImageIdentifier(publisher=payload.publisher, offer=payload.offer, sku=payload.sku),
				features=[GalleryImageFeature(name="SecurityType", value=payload.security_type)] if payload.security_type else None,
			),
		)
		created = self.images.create(gallery.sub.uuid, gallery.rg.name, gallery.name, spec.name, image)
		return self.created(spec, created.rid)


def default_steps(azrest: AzRest, sleep: Callable[[float], None] = time.sleep) -> Dict[Kind, Step]:
	steps: List[Step] = [
		ResourceGroupStep(azrest),
		ManagedIdentityStep(azrest, sleep),
		RoleDefinitionStep(azrest),
		RoleAssignmentStep(azrest),
		GalleryStep(azrest),
		GalleryImageDefinitionStep(azrest),
	]
	return {step.kind: step for step in steps}
