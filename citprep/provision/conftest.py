"""Conftest"""

# pylint: disable=redefined-outer-name
import os
from typing import List

import pytest

from citprep.provision.environment import Environment
from citprep.provision.provisioner import Provisioner
from citprep.test.fakeazure import FakeAzure

SUB = "sub1"
RG_ID = "/subscriptions/sub1/resourceGroups/rg1"
NETWORK_RG_ID = "/subscriptions/sub1/resourceGroups/rg-network"


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
	"""Fixture: keep `CITPREP_*` variables from the real environment out of Environments"""
	for var in [k for k in os.environ if k.upper().startswith("CITPREP_")]:
		monkeypatch.delenv(var)


@pytest.fixture
def fake() -> FakeAzure:
	"""Fixture: an empty Azure"""
	return FakeAzure()


@pytest.fixture
def sleeps() -> List[float]:
	"""Fixture: records the sleeps the provisioner would have made"""
	return []


@pytest.fixture
def provisioner(fake, sleeps) -> Provisioner:
	"""Fixture: Provisioner against the fake Azure, which doesn't sleep"""
	return Provisioner(fake, sleep=sleeps.append)  # type: ignore  # FakeAzure quacks like AzRest


def mk_env(**kwargs) -> Environment:
	"""An Environment for tests, filling in the required settings"""
	settings = dict(subscription_id=SUB, resource_group="rg1", location="eastus", providers=[])
	settings.update(kwargs)
	return Environment(**settings)


@pytest.fixture
def env() -> Environment:
	"""Fixture: the minimal Environment"""
	return mk_env()


@pytest.fixture
def gallery_env() -> Environment:
	"""Fixture: an Environment with a gallery and image definition"""
	return mk_env(gallery_name="gal1", image_definition_name="def1")


@pytest.fixture
def network_rg(fake):
	"""Fixture: an existing network resource group with a virtual network in it"""
	fake.add(NETWORK_RG_ID, {"location": "eastus"})
	fake.add(f"{NETWORK_RG_ID}/providers/Microsoft.Network/virtualNetworks/vnet0", {"location": "eastus"})
	return "rg-network"
