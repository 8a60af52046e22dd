"""Azure Virtual Networks"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from citprep.azrest.azrest import AzOps
from citprep.azrest.models import AzList, ReadOnly, Req


class VirtualNetwork(BaseModel):
	"""A virtual network, only as much of it as we read"""

	model_config = ConfigDict(populate_by_name=True)

	rid: ReadOnly[str] = Field(alias="id", default=None)
	name: ReadOnly[str] = None
	location: Optional[str] = None


class AzVirtualNetworks:
	apiv = "2023-09-01"

	@staticmethod
	def List(subscriptionId: str, resourceGroupName: str) -> Req[List[VirtualNetwork]]:
		return Req.get(
			name="VirtualNetworks.List",
			path=f"/subscriptions/{subscriptionId}/resourceGroups/{resourceGroupName}/providers/Microsoft.Network/virtualNetworks",
			apiv=AzVirtualNetworks.apiv,
			ret_t=AzList[VirtualNetwork],
		)


class VirtualNetworks(AzVirtualNetworks, AzOps):
	def list(self, subscription_id: str, resource_group: str) -> List[VirtualNetwork]:
		return self.run(self.List(subscription_id, resource_group))
