"""Provision the prerequisites for Azure Virtual Desktop Custom Image Template builds"""
import functools
import logging
import sys

import click
from azure.identity import DefaultAzureCredential

from citprep.azrest.azrest import AzRest
from citprep.provision import graph, plan, report
from citprep.provision.environment import Environment
from citprep.provision.provisioner import Provisioner


def make_azrest() -> AzRest:
	"""Connect to Azure with whatever login is already established"""
	return AzRest.from_credential(DefaultAzureCredential())


def configure_logging(verbose: bool, quiet: bool, stream):
	level = logging.DEBUG if verbose else logging.WARNING if quiet else logging.INFO
	logging.basicConfig(level=level, stream=stream, format="%(levelname)s %(name)s: %(message)s", force=True)
	# requests and azure-identity are chatty below WARNING
	for noisy in ("urllib3", "azure"):
		logging.getLogger(noisy).setLevel(max(level, logging.WARNING))


ENVIRONMENT_OPTIONS = [
	"subscription_id",
	"resource_group",
	"location",
	"identity_name",
	"network_resource_group",
	"gallery_name",
	"image_definition_name",
	"publisher",
	"offer",
	"sku",
	"settle_delay",
]


def environment_options(fn):
	"""The options which describe an Environment"""

	@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False), help="YAML file of settings. Options override it.")
	@click.option("--subscription-id", help="Subscription to provision in.")
	@click.option("--resource-group", help="Resource group to create or reuse for image builds.")
	@click.option("--location", help="Azure region, for example eastus.")
	@click.option("--identity-name", help="Name of the managed identity for Azure Image Builder.")
	@click.option("--network-resource-group", help="Existing resource group with the virtual network builds should join.")
	@click.option("--gallery-name", help="Azure Compute Gallery to create or reuse.")
	@click.option("--image-definition-name", help="Image definition to create or reuse in the gallery.")
	@click.option("--publisher", help="Image definition publisher.")
	@click.option("--offer", help="Image definition offer.")
	@click.option("--sku", help="Image definition SKU.")
	@click.option("--settle-delay", type=float, help="Seconds to wait after creating the identity before using it.")
	@functools.wraps(fn)
	def wrapper(config_path, **kwargs):
		settings = {k: kwargs.pop(k) for k in ENVIRONMENT_OPTIONS}
		try:
			env = Environment.from_yaml(config_path, **settings)
		except ValueError as e:  # includes pydantic.ValidationError
			raise click.UsageError(f"invalid settings: {e}")
		return fn(env, **kwargs)

	return wrapper


@click.group()
def cli():
	"""Provision the prerequisites for Azure Virtual Desktop Custom Image Template builds"""


@cli.command()
@environment_options
@click.option("--output", type=click.Choice(["text", "json"]), default="text", help="Format of the summary.")
@click.option("-v", "--verbose", is_flag=True, help="Log every request.")
@click.option("-q", "--quiet", is_flag=True, help="Only log warnings and errors.")
def ensure(env: Environment, output: str, verbose: bool, quiet: bool):
	"""Create whatever is missing, leave what exists, and summarise"""
	# keep stdout clean for the JSON summary
	configure_logging(verbose, quiet, sys.stderr if output == "json" else sys.stdout)
	summary = Provisioner(make_azrest()).ensure(env)

	click.echo(report.to_json(summary) if output == "json" else report.to_text(summary))
	click.get_current_context().exit(0 if summary.ok else 1)


@cli.command(name="plan")
@environment_options
def show_plan(env: Environment):
	"""Show what would be provisioned, in order, without calling Azure"""
	the_plan = plan.build(env)
	click.echo(report.plan_to_text(graph.order(the_plan.specs), the_plan.skipped))


def main():
	cli()  # pylint: disable=no-value-for-parameter


if __name__ == "__main__":
	main()
