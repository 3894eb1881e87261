"""Parameter compliance routes for AECCheck.

Runs category and discipline analyses against the AEC platform and stores,
reads and rolls up parameter checks.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from aeccheck.aec.client import AECGraphQLClient
from aeccheck.analysis.aggregation import summarize_rows_by_category
from aeccheck.analysis.category import CategoryAnalyzer
from aeccheck.analysis.orchestrator import DisciplineAnalysisOrchestrator
from aeccheck.catalog import DisciplineCatalog
from aeccheck.checks.gateway import CheckPersistenceGateway
from aeccheck.config import AnalysisConfig
from aeccheck.errors import (
    AllCategoriesFailedError,
    CatalogError,
    PersistenceError,
    RemoteFetchError,
    ValidationError,
)
from aeccheck.models import (
    CategoryAnalysis,
    Check,
    DisciplineAnalysisResult,
    ProjectRollup,
    SaveResult,
)
from aeccheck.web.dependencies import (
    get_aec_client,
    get_analysis_config,
    get_catalog,
    get_gateway,
)
from aeccheck.web.models import (
    CategoryInfo,
    DisciplineInfo,
    LastDisciplineResponse,
    LatestCheckResponse,
    SaveCheckRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/aec", tags=["parameters"])


@router.get("/disciplines", response_model=list[DisciplineInfo])
async def list_disciplines(catalog: DisciplineCatalog = Depends(get_catalog)):
    """Disciplines and their categories in catalog order."""
    return [
        DisciplineInfo(
            id=d.id,
            name=d.name,
            categories=[
                CategoryInfo(
                    id=c.id,
                    name=c.name,
                    query=c.query,
                    required_parameters=list(c.required_parameters),
                )
                for c in d.categories
            ],
        )
        for d in catalog.disciplines
    ]


@router.get("/{project_id}/models/{model_id}/parameters", response_model=CategoryAnalysis)
async def analyze_category(
    project_id: str,
    model_id: str,
    category: str = Query(..., min_length=1),
    client: AECGraphQLClient = Depends(get_aec_client),
    catalog: DisciplineCatalog = Depends(get_catalog),
    settings: AnalysisConfig = Depends(get_analysis_config),
):
    """Analyze a single category of a model."""
    analyzer = CategoryAnalyzer(
        client,
        catalog=catalog,
        fallback_total=settings.fallback_required_total,
    )
    try:
        return await analyzer.analyze(project_id, model_id, category)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except RemoteFetchError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e


@router.post(
    "/{project_id}/models/{model_id}/disciplines/{discipline_id}/analyze",
    response_model=DisciplineAnalysisResult,
)
async def analyze_discipline(
    project_id: str,
    model_id: str,
    discipline_id: str,
    client: AECGraphQLClient = Depends(get_aec_client),
    catalog: DisciplineCatalog = Depends(get_catalog),
    settings: AnalysisConfig = Depends(get_analysis_config),
):
    """Analyze every category of a discipline.

    Partial failures come back as a completed result listing the failed
    categories; only a run where every category failed is an error.
    """
    try:
        discipline = catalog.get(discipline_id)
    except CatalogError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e

    orchestrator = DisciplineAnalysisOrchestrator(
        CategoryAnalyzer(
            client,
            catalog=catalog,
            fallback_total=settings.fallback_required_total,
        ),
        delay_seconds=settings.inter_category_delay_seconds,
        category_timeout_seconds=settings.category_timeout_seconds,
    )

    try:
        return await orchestrator.run_or_raise(project_id, model_id, discipline)
    except AllCategoriesFailedError as e:
        raise HTTPException(
            status_code=502,
            detail={"message": str(e), "failed_categories": e.failed_categories},
        ) from e
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.post("/{project_id}/parameter-checks", response_model=SaveResult, status_code=201)
async def save_parameter_check(
    project_id: str,
    request: SaveCheckRequest,
    gateway: CheckPersistenceGateway = Depends(get_gateway),
):
    """Save a discipline analysis as a new check version."""
    summary = request.summary or summarize_rows_by_category(request.rows)
    check = Check(
        project_id=project_id,
        model_id=request.model_id,
        model_name=request.model_name,
        discipline_id=request.discipline_id,
        category_id=request.category_id,
        rows=request.rows,
        summary=summary,
    )

    try:
        return await gateway.save(check)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e


@router.get(
    "/{project_id}/parameter-checks/latest",
    response_model=LatestCheckResponse,
    response_model_exclude_none=True,
)
async def get_latest_parameter_check(
    project_id: str,
    model_id: str = Query(..., min_length=1),
    discipline_id: str = Query(..., min_length=1),
    gateway: CheckPersistenceGateway = Depends(get_gateway),
):
    try:
        check = await gateway.get_latest(project_id, model_id, discipline_id)
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e

    if check is None:
        return LatestCheckResponse(found=False)
    return LatestCheckResponse(found=True, check=check)


@router.get(
    "/{project_id}/models/{model_id}/last-discipline",
    response_model=LastDisciplineResponse,
    response_model_exclude_none=True,
)
async def get_last_discipline(
    project_id: str,
    model_id: str,
    gateway: CheckPersistenceGateway = Depends(get_gateway),
):
    try:
        last = await gateway.get_latest_discipline_for_model(project_id, model_id)
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e

    if last is None:
        return LastDisciplineResponse(found=False)
    return LastDisciplineResponse(found=True, last=last)


@router.get("/{project_id}/parameter-compliance", response_model=ProjectRollup)
async def get_parameter_compliance(
    project_id: str,
    gateway: CheckPersistenceGateway = Depends(get_gateway),
):
    """Per-model compliance rollup of a project, computed from saved checks."""
    try:
        return await gateway.get_project_rollup(project_id)
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e
