"""Test loading settings"""
# pylint: disable=redefined-outer-name
import os

import pytest
from pydantic import ValidationError

from citprep.provision.environment import DEFAULT_PROVIDERS, IMAGE_BUILDER_ACTIONS, Environment
from citprep.provision.conftest import mk_env


@pytest.fixture
def settings_file(tmp_path):
	path = tmp_path / "citprep.yaml"
	path.write_text(
		"\n".join(
			[
				"subscription_id: sub1",
				"resource_group: rg-images",
				"location: westeurope",
				"gallery_name: gal1",
				"providers:",
				"  - Microsoft.VirtualMachineImages",
			]
		),
		encoding="utf-8",
	)
	return path


class TestDefaults:
	def test_defaults(self):
		env = mk_env(providers=DEFAULT_PROVIDERS)

		assert env.identity_name == "id-avd-image-builder"
		assert env.image_builder_actions == IMAGE_BUILDER_ACTIONS
		assert env.settle_delay == 10.0
		assert env.network_resource_group is None
		assert env.gallery_name is None
		assert "Microsoft.VirtualMachineImages" in env.providers

	def test_real_environment_is_kept_out(self):
		assert not [k for k in os.environ if k.upper().startswith("CITPREP_")]
		assert mk_env().identity_name == "id-avd-image-builder"

	def test_derived_names(self):
		env = mk_env(network_resource_group="rg-network")
		assert env.effective_role_name == "AVD Image Builder (rg1)"
		assert env.effective_network_role_name == "AVD Image Builder Network (rg-network)"

	def test_scopes(self):
		env = mk_env()
		assert env.subscription.uuid == "sub1"
		assert env.rg.name == "rg1"

	def test_negative_settle_delay(self):
		with pytest.raises(ValidationError):
			mk_env(settle_delay=-1)


class TestSources:
	def test_yaml(self, settings_file):
		env = Environment.from_yaml(settings_file)

		assert env.resource_group == "rg-images"
		assert env.location == "westeurope"
		assert env.gallery_name == "gal1"
		assert env.providers == ["Microsoft.VirtualMachineImages"]

	def test_overrides_win(self, settings_file):
		env = Environment.from_yaml(settings_file, location="eastus", gallery_name=None)

		assert env.location == "eastus"
		assert env.gallery_name == "gal1"

	def test_environment_variables(self, monkeypatch):
		monkeypatch.setenv("CITPREP_SUBSCRIPTION_ID", "sub2")
		monkeypatch.setenv("CITPREP_RESOURCE_GROUP", "rg2")
		monkeypatch.setenv("CITPREP_LOCATION", "eastus")
		monkeypatch.setenv("CITPREP_SETTLE_DELAY", "2.5")

		env = Environment.from_yaml()

		assert env.subscription_id == "sub2"
		assert env.settle_delay == 2.5

	def test_not_a_mapping(self, tmp_path):
		path = tmp_path / "list.yaml"
		path.write_text("- just\n- a list\n", encoding="utf-8")

		with pytest.raises(ValueError, match="mapping"):
			Environment.from_yaml(path)

	def test_unparseable(self, tmp_path):
		path = tmp_path / "broken.yaml"
		path.write_text("subscription_id: [unclosed\n", encoding="utf-8")

		with pytest.raises(ValueError, match="could not parse"):
			Environment.from_yaml(path)

	def test_missing_required(self, tmp_path, monkeypatch):
		for var in ("CITPREP_SUBSCRIPTION_ID", "CITPREP_RESOURCE_GROUP", "CITPREP_LOCATION"):
			monkeypatch.delenv(var, raising=False)
		path = tmp_path / "partial.yaml"
		path.write_text("subscription_id: sub1\n", encoding="utf-8")

		with pytest.raises(ValidationError):
			Environment.from_yaml(path)
