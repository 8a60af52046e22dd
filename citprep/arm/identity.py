"""Azure User-Assigned Managed Identities"""

from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from citprep.azrest.azrest import AzOps
from citprep.azrest.models import ReadOnly, Req


class Identity(BaseModel):
	"""A user-assigned managed identity"""

	model_config = ConfigDict(populate_by_name=True)

	class Properties(BaseModel):
		tenantId: ReadOnly[str] = None
		principalId: ReadOnly[str] = None
		clientId: ReadOnly[str] = None

	rid: ReadOnly[str] = Field(alias="id", default=None)
	name: ReadOnly[str] = None
	location: str
	tags: Dict[str, str] = {}
	properties: Optional[Properties] = None


class AzUserAssignedIdentities:
	apiv = "2023-01-31"

	@staticmethod
	def Get(subscriptionId: str, resourceGroupName: str, resourceName: str) -> Req[Identity]:
		return Req.get(
			name="UserAssignedIdentities.Get",
			path=f"/subscriptions/{subscriptionId}/resourceGroups/{resourceGroupName}/providers/Microsoft.ManagedIdentity/userAssignedIdentities/{resourceName}",
			apiv=AzUserAssignedIdentities.apiv,
			ret_t=Identity,
		)

	@staticmethod
	def CreateOrUpdate(subscriptionId: str, resourceGroupName: str, resourceName: str, parameters: Identity) -> Req[Identity]:
		return Req.put(
			name="UserAssignedIdentities.CreateOrUpdate",
			path=f"/subscriptions/{subscriptionId}/resourceGroups/{resourceGroupName}/providers/Microsoft.ManagedIdentity/userAssignedIdentities/{resourceName}",
			apiv=AzUserAssignedIdentities.apiv,
			body=parameters,
			ret_t=Identity,
		)


class Identities(AzUserAssignedIdentities, AzOps):
	"""Managed identity operations"""

	def get(self, subscription_id: str, resource_group: str, name: str) -> Optional[Identity]:
		return self.get_or_none(self.Get(subscription_id, resource_group, name))

	def create(self, subscription_id: str, resource_group: str, name: str, location: str) -> Identity:
		"""
		Create an identity.

		The response to the create call isn't guaranteed to carry the principal yet,
		so read the identity back with `get` before using it.
		"""
		return self.run(self.CreateOrUpdate(subscription_id, resource_group, name, Identity(location=location)))
