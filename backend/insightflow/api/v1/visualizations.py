"""
On-demand chart endpoints returning raw PNG bytes.

Framework charts generate the framework for the company first; comparison
charts take a comparison payload as produced by ``/api/comparison``.
"""

import asyncio
import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, HTTPException, Request, Response, status

from insightflow.api.dependencies import AnalysisServiceDep, CurrentUser, VisualizationServiceDep
from insightflow.services.comparison_service import metrics_by_company
from insightflow.services.visualization import decode_png

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/visualizations")

PNG_MEDIA_TYPE = "image/png"

# framework -> (AnalysisService method, VisualizationService method)
_FRAMEWORKS = {
    "swot": ("generate_swot", "generate_swot_chart"),
    "pestel": ("generate_pestel", "generate_pestel_chart"),
    "porter": ("generate_porter", "generate_porter_chart"),
    "bcg": ("generate_bcg", "generate_bcg_chart"),
    "mckinsey": ("generate_mckinsey", "generate_mckinsey_chart"),
}

_COMPARISON_CHARTS = {
    "radar": "generate_radar_chart",
    "bar": "generate_bar_graph",
    "scatter": "generate_scatter_plot",
}


def _png(image_base64: str) -> Response:
    return Response(content=decode_png(image_base64), media_type=PNG_MEDIA_TYPE)


@router.get("/{framework}/{company}", response_class=Response)
async def framework_chart(
    framework: str,
    company: str,
    request: Request,
    current_user: CurrentUser,
    analysis_service: AnalysisServiceDep,
    visualization_service: VisualizationServiceDep,
) -> Response:
    """
    Generate one framework for ``company`` and render it.

    ``framework`` is one of swot, pestel, porter, bcg, mckinsey.

    Raises:
        HTTPException 404: Unknown framework
        HTTPException 500: Chart rendering failed
    """
    methods = _FRAMEWORKS.get(framework.lower())
    if methods is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown chart type: {framework}")
    generate_name, render_name = methods

    data = await getattr(analysis_service, generate_name)(
        company, correlation_id=getattr(request.state, "request_id", None)
    )
    try:
        image = await asyncio.to_thread(getattr(visualization_service, render_name), data, company)
    except Exception as e:
        logger.error(f"Failed to render {framework} chart", extra={"company_name": company}, exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Chart generation failed: {e}")

    return _png(image)


@router.post("/comparison/{chart}", response_class=Response)
async def comparison_chart(
    chart: str,
    current_user: CurrentUser,
    visualization_service: VisualizationServiceDep,
    comparison: Dict[str, Any] = Body(...),
) -> Response:
    """
    Render a comparison chart (radar, bar or scatter).

    The body needs ``metrics`` and ``company_names`` in the same order.
    """
    render_name = _COMPARISON_CHARTS.get(chart.lower())
    if render_name is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown chart type: {chart}")

    metrics = metrics_by_company(comparison)
    if not metrics:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Comparison payload needs company_names and metrics",
        )

    try:
        image = await asyncio.to_thread(getattr(visualization_service, render_name), metrics)
    except Exception as e:
        logger.error(f"Failed to render {chart} comparison chart", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Chart generation failed: {e}")

    return _png(image)
