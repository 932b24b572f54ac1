"""Schema management for the relational providers of a domain.

The memory provider used in development and tests needs no schema; these
helpers only act on ``sqlite`` and ``postgresql`` providers.
"""

import structlog
from protean.domain import Domain
from sqlalchemy import create_engine

logger = structlog.get_logger(__name__)

_RELATIONAL_PROVIDERS = ("sqlite", "postgresql")


def _relational_providers(domain: Domain):
    return [
        provider
        for provider in domain.providers.values()
        if provider.conn_info["provider"] in _RELATIONAL_PROVIDERS
    ]


def _register_models(domain: Domain, provider) -> None:
    """Touch every repository DAO so its table is registered on the provider metadata."""
    registries = (
        domain.registry.aggregates,
        domain.registry.entities,
        domain.registry.projections,
    )
    for registry in registries:
        for record in registry.values():
            if record.cls.meta_.provider == provider.name:
                domain.repository_for(record.cls)._dao  # noqa: B018


def setup_db(domain: Domain) -> None:
    """Create tables for every aggregate, entity and projection."""
    with domain.domain_context():
        for provider in _relational_providers(domain):
            engine = create_engine(provider.conn_info["database_uri"])
            _register_models(domain, provider)
            provider._metadata.create_all(engine)
            logger.info("schema_created", provider=provider.name)


def drop_db(domain: Domain) -> None:
    """Drop every table created by ``setup_db``."""
    with domain.domain_context():
        for provider in _relational_providers(domain):
            engine = create_engine(provider.conn_info["database_uri"])
            provider._metadata.drop_all(engine)
            logger.info("schema_dropped", provider=provider.name)
