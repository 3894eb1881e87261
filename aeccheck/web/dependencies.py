"""Shared dependencies for AECCheck web routes.

Route handlers receive the catalog, the AEC client and the check gateway
through FastAPI's Depends(); tests swap them with app.dependency_overrides.

Usage:
    from fastapi import Depends
    from aeccheck.web.dependencies import get_gateway

    @router.get("/checks")
    async def checks(gateway=Depends(get_gateway)):
        ...
"""

from __future__ import annotations

from collections.abc import AsyncGenerator

from fastapi import Header, HTTPException

from aeccheck.aec.client import AECGraphQLClient
from aeccheck.catalog import DisciplineCatalog
from aeccheck.catalog import get_catalog as load_default_catalog
from aeccheck.checks.gateway import CheckPersistenceGateway
from aeccheck.config import AnalysisConfig, get_config
from aeccheck.db.connection import get_session


def get_catalog() -> DisciplineCatalog:
    return load_default_catalog()


def get_analysis_config() -> AnalysisConfig:
    return get_config().analysis


def bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_aec_client(
    authorization: str | None = Header(default=None),
) -> AsyncGenerator[AECGraphQLClient, None]:
    """AEC client authenticated with the caller's bearer token.

    Falls back to AEC_ACCESS_TOKEN for service deployments.
    """
    config = get_config()
    token = bearer_token(authorization) or config.aec.access_token
    if not token:
        raise HTTPException(status_code=401, detail="Missing AEC access token")

    async with AECGraphQLClient(token, config=config.aec) as client:
        yield client


async def get_gateway() -> AsyncGenerator[CheckPersistenceGateway, None]:
    async with get_session() as session:
        yield CheckPersistenceGateway(session)
