"""Azure Compute Galleries and their image definitions"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from citprep.azrest.azrest import AzOps
from citprep.azrest.models import ReadOnly, Req


class Gallery(BaseModel):
	"""An Azure Compute Gallery"""

	model_config = ConfigDict(populate_by_name=True)

	class Properties(BaseModel):
		description: Optional[str] = None
		provisioningState: ReadOnly[str] = None

	rid: ReadOnly[str] = Field(alias="id", default=None)
	name: ReadOnly[str] = None
	location: str
	tags: Dict[str, str] = {}
	properties: Properties = Properties()


class GalleryImageIdentifier(BaseModel):
	publisher: str
	offer: str
	sku: str


class GalleryImageFeature(BaseModel):
	name: str
	value: str


class GalleryImage(BaseModel):
	"""A gallery image definition"""

	model_config = ConfigDict(populate_by_name=True)

	class Properties(BaseModel):
		osType: str = "Windows"
		osState: str = "Generalized"
		hyperVGeneration: Optional[str] = None
		identifier: GalleryImageIdentifier
		features: Optional[List[GalleryImageFeature]] = None
		description: Optional[str] = None
		provisioningState: ReadOnly[str] = None

	rid: ReadOnly[str] = Field(alias="id", default=None)
	name: ReadOnly[str] = None
	location: str
	tags: Dict[str, str] = {}
	properties: Properties


class AzGalleries:
	apiv = "2022-03-03"

	@staticmethod
	def Get(subscriptionId: str, resourceGroupName: str, galleryName: str) -> Req[Gallery]:
		return Req.get(
			name="Galleries.Get",
			path=f"/subscriptions/{subscriptionId}/resourceGroups/{resourceGroupName}/providers/Microsoft.Compute/galleries/{galleryName}",
			apiv=AzGalleries.apiv,
			ret_t=Gallery,
		)

	@staticmethod
	def CreateOrUpdate(subscriptionId: str, resourceGroupName: str, galleryName: str, gallery: Gallery) -> Req[Gallery]:
		return Req.put(
			name="Galleries.CreateOrUpdate",
			path=f"/subscriptions/{subscriptionId}/resourceGroups/{resourceGroupName}/providers/Microsoft.Compute/galleries/{galleryName}",
			apiv=AzGalleries.apiv,
			body=gallery,
			ret_t=Gallery,
		)


class AzGalleryImages:
	apiv = "2022-03-03"

	@staticmethod
	def Get(subscriptionId: str, resourceGroupName: str, galleryName: str, galleryImageName: str) -> Req[GalleryImage]:
		return Req.get(
			name="GalleryImages.Get",
			path=f"/subscriptions/{subscriptionId}/resourceGroups/{resourceGroupName}/providers/Microsoft.Compute/galleries/{galleryName}/images/{galleryImageName}",
			apiv=AzGalleryImages.apiv,
			ret_t=GalleryImage,
		)

	@staticmethod
	def CreateOrUpdate(subscriptionId: str, resourceGroupName: str, galleryName: str, galleryImageName: str, galleryImage: GalleryImage) -> Req[GalleryImage]:
		return Req.put(
			name="GalleryImages.CreateOrUpdate",
			path=f"/subscriptions/{subscriptionId}/resourceGroups/{resourceGroupName}/providers/Microsoft.Compute/galleries/{galleryName}/images/{galleryImageName}",
			apiv=AzGalleryImages.apiv,
			body=galleryImage,
			ret_t=GalleryImage,
		)


class Galleries(AzGalleries, AzOps):
	"""Gallery operations"""

	def get(self, subscription_id: str, resource_group: str, name: str) -> Optional[Gallery]:
		return self.get_or_none(self.Get(subscription_id, resource_group, name))

	def create(self, subscription_id: str, resource_group: str, name: str, gallery: Gallery) -> Gallery:
		"""Create a gallery and wait for it to be provisioned"""
		self.run_long(self.CreateOrUpdate(subscription_id, resource_group, name, gallery))
		return self.run(self.Get(subscription_id, resource_group, name))


class GalleryImages(AzGalleryImages, AzOps):
	"""Gallery image definition operations"""

	def get(self, subscription_id: str, resource_group: str, gallery: str, name: str) -> Optional[GalleryImage]:
		return self.get_or_none(self.Get(subscription_id, resource_group, gallery, name))

	def create(self, subscription_id: str, resource_group: str, gallery: str, name: str, image: GalleryImage) -> GalleryImage:
		"""Create an image definition and wait for it to be provisioned"""
		self.run_long(self.CreateOrUpdate(subscription_id, resource_group, gallery, name, image))
		return self.run(self.Get(subscription_id, resource_group, gallery, name))
