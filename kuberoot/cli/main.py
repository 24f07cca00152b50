"""Click commands: server, collector agent, and API key administration."""

from __future__ import annotations

import asyncio
import os

import click

from kuberoot.auth.keys import generate_api_key, hash_api_key
from kuberoot.errors import StoreError
from kuberoot.models.config import AgentConfig
from kuberoot.observability.logging import setup_logging


@click.group()
@click.option("--log-level", default="info", type=click.Choice(["debug", "info", "warning", "error"]))
def cli(log_level: str) -> None:
    """Kuberoot: tenant-scoped Kubernetes failure diagnosis."""
    setup_logging(log_level)


@cli.command()
def serve() -> None:
    """Run the backend server (configured from KUBEROOT_* and DATABASE_URL)."""
    from kuberoot.app import main

    asyncio.run(main())


@cli.command()
def agent() -> None:
    """Run the collector agent against the local cluster."""
    from kuberoot.config import load_agent_config

    try:
        config = load_agent_config()
    except ValueError as exc:
        raise click.UsageError(str(exc)) from exc
    asyncio.run(_run_agent(config))


async def _run_agent(config: AgentConfig) -> None:
    from kuberoot.collector.agent import run_agent
    from kuberoot.collector.source import KubernetesStateSource

    source = await KubernetesStateSource.connect()
    try:
        await run_agent(config, source)
    finally:
        await source.close()


def _require_tenant(ctx: click.Context, param: click.Parameter, value: str) -> str:
    value = value.strip()
    if not value:
        raise click.BadParameter("tenant id must not be blank")
    return value


def activation_sql(tenant_id: str, key_hash: str, name: str) -> str:
    """SQL that activates a key when no database is reachable from here."""
    tenant = tenant_id.replace("'", "''")
    label = name.replace("'", "''")
    return (
        "INSERT INTO api_keys (tenant_id, key_hash, name, active, created_at)\n"
        f"VALUES ('{tenant}', '{key_hash}', '{label}', true, NOW());"
    )


@cli.command()
@click.option(
    "--tenant",
    "tenant_id",
    required=True,
    callback=_require_tenant,
    help="Tenant (organization) id the key belongs to.",
)
@click.option("--name", default="default", show_default=True, help="Label for the key.")
def keygen(tenant_id: str, name: str) -> None:
    """Generate an API key and bind it to a tenant.

    With DATABASE_URL set the digest is stored directly; otherwise the SQL
    to activate it is printed.  The key itself is shown once and never stored.
    """
    api_key = generate_api_key()
    key_hash = hash_api_key(api_key)
    database_url = os.environ.get("DATABASE_URL", "")

    if database_url:
        try:
            asyncio.run(_store_key(database_url, tenant_id, key_hash, name))
        except StoreError as exc:
            raise click.ClickException(f"failed to store API key: {exc}") from exc

    click.echo("========================================")
    click.echo("Generated API Key:")
    click.echo("========================================")
    click.echo(f"Key: {api_key}")
    click.echo(f"Tenant: {tenant_id}")
    click.echo(f"Name: {name}")
    click.echo()
    if database_url:
        click.echo("The key is active.")
    else:
        click.echo("To activate, run this SQL:")
        click.echo(activation_sql(tenant_id, key_hash, name))
    click.echo()
    click.echo("IMPORTANT: Save this key now. It cannot be retrieved later.")


async def _store_key(database_url: str, tenant_id: str, key_hash: str, name: str) -> None:
    from kuberoot.store.postgres import PostgresStore

    store = await PostgresStore.connect(database_url)
    try:
        await store.create_api_key(tenant_id, key_hash, name)
    finally:
        await store.close()


@cli.command()
@click.option("--key", "api_key", required=True, help="The API key to deactivate.")
def revoke(api_key: str) -> None:
    """Deactivate an API key (keys are never deleted)."""
    database_url = os.environ.get("DATABASE_URL", "")
    if not database_url:
        raise click.UsageError("DATABASE_URL environment variable is required")
    try:
        revoked = asyncio.run(_revoke_key(database_url, hash_api_key(api_key.strip())))
    except StoreError as exc:
        raise click.ClickException(f"failed to revoke API key: {exc}") from exc
    if not revoked:
        raise click.ClickException("no active API key matched")
    click.echo("API key deactivated.")


async def _revoke_key(database_url: str, key_hash: str) -> bool:
    from kuberoot.store.postgres import PostgresStore

    store = await PostgresStore.connect(database_url)
    try:
        return await store.deactivate_api_key(key_hash)
    finally:
        await store.close()


@cli.command("register-cluster")
@click.option("--tenant", "tenant_id", required=True, callback=_require_tenant, help="Tenant that owns the cluster.")
@click.option("--cluster", "cluster_id", required=True, help="Cluster id the agent reports under.")
def register_cluster(tenant_id: str, cluster_id: str) -> None:
    """Bind a cluster id to a tenant ahead of its first report."""
    cluster_id = cluster_id.strip()
    if not cluster_id:
        raise click.BadParameter("cluster id must not be blank", param_hint="'--cluster'")
    database_url = os.environ.get("DATABASE_URL", "")
    if not database_url:
        raise click.UsageError("DATABASE_URL environment variable is required")
    try:
        asyncio.run(_register_cluster(database_url, tenant_id, cluster_id))
    except StoreError as exc:
        raise click.ClickException(f"failed to register cluster: {exc}") from exc
    click.echo(f"Cluster {cluster_id} registered to tenant {tenant_id}.")


async def _register_cluster(database_url: str, tenant_id: str, cluster_id: str) -> None:
    from kuberoot.store.postgres import PostgresStore

    store = await PostgresStore.connect(database_url)
    try:
        await store.register_cluster(tenant_id, cluster_id)
    finally:
        await store.close()
