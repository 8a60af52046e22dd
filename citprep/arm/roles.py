"""Azure Role Definitions and Assignments"""

import logging
from typing import List, Optional
from uuid import NAMESPACE_URL, uuid5

from pydantic import BaseModel, ConfigDict, Field

from citprep.azrest.azrest import AzOps, rid_eq
from citprep.azrest.models import AzList, ReadOnly, Req
from citprep.rid import rid

l = logging.getLogger(__name__)


def stable_name(*parts: str) -> str:
	"""
	A GUID derived from its inputs.

	Role definitions and assignments are named by GUID.
	Deriving it means that two runs racing to create the same thing collide instead of duplicating it.
	"""
	return str(uuid5(NAMESPACE_URL, "/".join(p.lower() for p in parts)))


def odata_str(value: str) -> str:
	"""Quote a string literal for an OData `$filter`"""
	return "'" + value.replace("'", "''") + "'"


class Permission(BaseModel):
	"""Role definition permissions."""

	actions: List[str] = []
	notActions: List[str] = []
	dataActions: List[str] = []
	notDataActions: List[str] = []


class RoleDefinition(BaseModel):
	"""Role definition."""

	model_config = ConfigDict(populate_by_name=True)

	class Properties(BaseModel):
		"""Role definition properties."""

		roleName: str
		description: Optional[str] = None
		type: str = "CustomRole"
		permissions: List[Permission] = []
		assignableScopes: List[str] = []

	rid: ReadOnly[str] = Field(alias="id", default=None)
	name: ReadOnly[str] = None
	properties: Properties

	@property
	def actions(self) -> List[str]:
		return [a for p in self.properties.permissions for a in p.actions]


class RoleAssignment(BaseModel):
	"""Role Assignments"""

	model_config = ConfigDict(populate_by_name=True)

	class Properties(BaseModel):
		"""Role assignment properties."""

		roleDefinitionId: str
		principalId: str
		principalType: Optional[str] = None
		scope: ReadOnly[str] = None

	rid: ReadOnly[str] = Field(alias="id", default=None)
	name: ReadOnly[str] = None
	properties: Properties


class AzRoleDefinitions:
	apiv = "2022-04-01"

	@staticmethod
	def List(scope: str) -> Req[List[RoleDefinition]]:
		return Req.get(
			name="RoleDefinitions.List",
			path=f"{scope}/providers/Microsoft.Authorization/roleDefinitions",
			apiv=AzRoleDefinitions.apiv,
			ret_t=AzList[RoleDefinition],
		)

	@staticmethod
	def CreateOrUpdate(scope: str, roleDefinitionId: str, roleDefinition: RoleDefinition) -> Req[RoleDefinition]:
		return Req.put(
			name="RoleDefinitions.CreateOrUpdate",
			path=f"{scope}/providers/Microsoft.Authorization/roleDefinitions/{roleDefinitionId}",
			apiv=AzRoleDefinitions.apiv,
			body=roleDefinition,
			ret_t=RoleDefinition,
		)


class AzRoleAssignments:
	apiv = "2022-04-01"

	@staticmethod
	def ListForScope(scope: str) -> Req[List[RoleAssignment]]:
		return Req.get(
			name="RoleAssignments.ListForScope",
			path=f"{scope}/providers/Microsoft.Authorization/roleAssignments",
			apiv=AzRoleAssignments.apiv,
			ret_t=AzList[RoleAssignment],
		)

	@staticmethod
	def Create(scope: str, roleAssignmentName: str, parameters: RoleAssignment) -> Req[RoleAssignment]:
		return Req.put(
			name="RoleAssignments.Create",
			path=f"{scope}/providers/Microsoft.Authorization/roleAssignments/{roleAssignmentName}",
			apiv=AzRoleAssignments.apiv,
			body=parameters,
			ret_t=RoleAssignment,
		)


class RoleDefinitions(AzRoleDefinitions, AzOps):
	"""More helpful role definitions operations"""

	def find(self, scope: str, role_name: str) -> Optional[RoleDefinition]:
		"""Find a role visible at a scope with exactly this name"""
		roles = self.run(self.List(scope).add_params({"$filter": f"roleName eq {odata_str(role_name)}"}))
		return next((e for e in roles if e.properties.roleName == role_name), None)

	def create(self, scope: str, role: RoleDefinition.Properties) -> RoleDefinition:
		"""Create a custom RoleDefinition which is assignable at least at its own scope"""
		target = role.model_copy(update={"assignableScopes": list(role.assignableScopes)})
		if not any(rid_eq(scope, e) for e in target.assignableScopes):
			l.debug("adding scope to RoleDefinition")
			target.assignableScopes.append(scope)

		name = stable_name(scope, role.roleName)
		l.debug(f"creating RoleDefinition name={name} scope={scope}")
		return self.run(self.CreateOrUpdate(scope, name, RoleDefinition(name=name, properties=target)))


class RoleAssignments(AzRoleAssignments, AzOps):
	"""More helpful role assignment operations"""

	def find(self, scope: str, principal_id: str, role_definition_id: str) -> Optional[RoleAssignment]:
		"""
		Find an assignment of a role to a principal made directly at a scope.

		Role definition IDs come back in different forms depending on where they were read,
		so they are compared by their GUID.
		"""
		target_role = rid.name_of(role_definition_id)
		asns = self.run(self.ListForScope(scope).add_params({"$filter": f"principalId eq {odata_str(principal_id)}"}))
		return next(
			(
				e
				for e in asns
				if e.properties.principalId == principal_id
				and rid.name_of(e.properties.roleDefinitionId) == target_role
				and (e.properties.scope is None or rid_eq(e.properties.scope, scope))
			),
			None,
		)

	def create(self, scope: str, principal_id: str, role_definition_id: str, principal_type: str = "ServicePrincipal") -> RoleAssignment:
		"""Just grant a Principal a Role at a Scope"""
		name = stable_name(scope, principal_id, role_definition_id)
		l.debug(f"creating RoleAssignment name={name} scope={scope}")
		assignment = RoleAssignment(
			name=name,
			properties=RoleAssignment.Properties(
				roleDefinitionId=role_definition_id,
				principalId=principal_id,
				principalType=principal_type,
			),
		)
		return self.run(self.Create(scope, name, assignment))
