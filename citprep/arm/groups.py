"""Azure Resource Groups"""

from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from citprep.azrest.azrest import AzOps
from citprep.azrest.models import ReadOnly, Req


class ResourceGroup(BaseModel):
	"""An Azure Resource Group"""

	model_config = ConfigDict(populate_by_name=True)

	class Properties(BaseModel):
		provisioningState: ReadOnly[str] = None

	rid: ReadOnly[str] = Field(alias="id", default=None)
	name: ReadOnly[str] = None
	location: str
	tags: Dict[str, str] = {}
	properties: Optional[Properties] = None


class AzResourceGroups:
	apiv = "2022-09-01"

	@staticmethod
	def Get(subscriptionId: str, resourceGroupName: str) -> Req[ResourceGroup]:
		return Req.get(
			name="ResourceGroups.Get",
			path=f"/subscriptions/{subscriptionId}/resourcegroups/{resourceGroupName}",
			apiv=AzResourceGroups.apiv,
			ret_t=ResourceGroup,
		)

	@staticmethod
	def CreateOrUpdate(subscriptionId: str, resourceGroupName: str, parameters: ResourceGroup) -> Req[ResourceGroup]:
		return Req.put(
			name="ResourceGroups.CreateOrUpdate",
			path=f"/subscriptions/{subscriptionId}/resourcegroups/{resourceGroupName}",
			apiv=AzResourceGroups.apiv,
			body=parameters,
			ret_t=ResourceGroup,
		)


class ResourceGroups(AzResourceGroups, AzOps):
	"""Resource group operations"""

	def get(self, subscription_id: str, name: str) -> Optional[ResourceGroup]:
		"""Get a resource group, or None if it does not exist"""
		return self.get_or_none(self.Get(subscription_id, name))

	def create(self, subscription_id: str, name: str, location: str) -> ResourceGroup:
		return self.run(self.CreateOrUpdate(subscription_id, name, ResourceGroup(location=location)))
