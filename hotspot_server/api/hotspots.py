"""Hotspot, region and risk API endpoints.

This is the thin FastAPI adapter. It parses JSON bodies into internal models,
calls the analyzer, and maps core exceptions to HTTP status codes.
"""

from __future__ import annotations

import json
import math

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse

from hotspot_server.core.clustering import hotspots_to_geojson
from hotspot_server.core.errors import (
    ClassifierError,
    ClusteringCancelled,
    DatasetTooLargeError,
    InvalidParameterError,
)
from hotspot_server.core.models import AccidentPoint, RiskRequest
from hotspot_server.core.regions import REGIONS, generate_accidents, get_region
from hotspot_server.core.risk import CLASSIFIER_FAILED_MESSAGE
from hotspot_server.core.stats import UPLOADED_REGION

router = APIRouter(prefix="/api/v1")


class _BadRequest(ValueError):
    pass


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(content={"error": message}, status_code=status_code)


def _number(data: dict, key: str) -> float:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise _BadRequest(f"'{key}' must be a finite number")
    return float(value)


def _parse_json_point(data: dict) -> AccidentPoint:
    """Parse one accident point from JSON."""
    if not isinstance(data, dict):
        raise _BadRequest("each point must be an object")

    point_id = data.get("id")
    if isinstance(point_id, bool) or not isinstance(point_id, int):
        raise _BadRequest("'id' must be an integer")

    lat = _number(data, "lat")
    lng = _number(data, "lng")
    if not -90 <= lat <= 90 or not -180 <= lng <= 180:
        raise _BadRequest(f"point {point_id} is outside valid lat/lng ranges")

    severity = data.get("severity", 1)
    if isinstance(severity, bool) or not isinstance(severity, int) or not 1 <= severity <= 5:
        raise _BadRequest(f"point {point_id} severity must be an integer 1-5")

    factors = data.get("factors", [])
    if isinstance(factors, str):
        factors = [f.strip() for f in factors.split(",") if f.strip()]
    if not isinstance(factors, list) or not all(isinstance(f, str) for f in factors):
        raise _BadRequest(f"point {point_id} factors must be a list of strings")

    return AccidentPoint(id=point_id, lat=lat, lng=lng, severity=severity,
                         factors=tuple(factors))


def _parse_json_risk_request(data: dict) -> RiskRequest:
    """Parse a classifier request (camelCase keys, as the UI sends them)."""
    if not isinstance(data, dict):
        raise _BadRequest("body must be an object")
    count = data.get("accidentCount")
    if isinstance(count, bool) or not isinstance(count, int):
        raise _BadRequest("'accidentCount' must be an integer")
    factors = data.get("contributingFactors", "")
    if not isinstance(factors, str):
        raise _BadRequest("'contributingFactors' must be a comma-separated string")
    return RiskRequest(
        accident_count=count,
        average_severity=_number(data, "averageSeverity"),
        latitude=_number(data, "latitude"),
        longitude=_number(data, "longitude"),
        contributing_factors=factors,
    )


async def _run_analysis(points, epsilon_km, min_pts, *, region_id: str,
                        mode: str | None, classify: bool, geojson: bool = False) -> JSONResponse:
    from hotspot_server.main import get_analyzer, get_config

    config = get_config()
    try:
        report = await get_analyzer().analyze(
            points,
            config.clustering.default_epsilon_km if epsilon_km is None else epsilon_km,
            config.clustering.default_min_pts if min_pts is None else min_pts,
            region_id=region_id,
            mode=mode or config.clustering.mode,
            classify=classify,
        )
    except DatasetTooLargeError as e:
        return _error(413, str(e))
    except InvalidParameterError as e:
        return _error(422, str(e))
    except ClusteringCancelled as e:
        return _error(503, f"clustering took too long: {e}")

    if not geojson:
        return JSONResponse(content=report.to_dict())

    collection = hotspots_to_geojson([h.hotspot for h in report.hotspots])
    for feature, annotated in zip(collection["features"], report.hotspots):
        if annotated.risk is not None:
            feature["properties"]["riskLevel"] = annotated.risk.risk_level.value
    return JSONResponse(content=collection, media_type="application/geo+json")


@router.get("/regions")
async def list_regions() -> dict:
    """Regions with a synthetic accident dataset."""
    return {"regions": [r.to_dict() for r in REGIONS]}


@router.get("/regions/{region_id}/hotspots")
async def get_region_hotspots(
    region_id: str,
    epsilon_km: float | None = Query(default=None),
    min_pts: int | None = Query(default=None),
    seed: int | None = Query(default=None),
    count: int | None = Query(default=None, ge=0),
    mode: str | None = Query(default=None),
    classify: bool = Query(default=False),
    format: str = Query(default="json", pattern="^(json|geojson)$"),
) -> JSONResponse:
    """Cluster a region's synthetic accident dataset.

    ``seed`` makes the dataset reproducible; ``format=geojson`` returns a
    FeatureCollection of hotspot centroids for map layers.
    """
    from hotspot_server.main import get_config

    region = get_region(region_id)
    if region is None:
        return _error(404, f"unknown region '{region_id}'")

    limit = get_config().limits.max_synthetic_points
    if count is not None and count > limit:
        return _error(413, f"count {count} exceeds the limit of {limit}")

    points = generate_accidents(region, count, seed=seed)
    return await _run_analysis(points, epsilon_km, min_pts, region_id=region.id,
                               mode=mode, classify=classify, geojson=format == "geojson")


@router.post("/hotspots")
async def post_hotspots(request: Request) -> JSONResponse:
    """Cluster an uploaded accident dataset.

    Body: {"points": [{"id", "lat", "lng", "severity", "factors"}, ...],
           "epsilon_km": 0.5, "min_pts": 5, "mode": "expanding", "classify": false}
    """
    try:
        body = json.loads(await request.body())
    except (json.JSONDecodeError, UnicodeDecodeError):
        return _error(400, "invalid JSON")
    if not isinstance(body, dict):
        return _error(400, "body must be an object")

    raw_points = body.get("points", [])
    if not isinstance(raw_points, list):
        return _error(400, "'points' must be a list")
    try:
        points = [_parse_json_point(p) for p in raw_points]
    except _BadRequest as e:
        return _error(400, str(e))

    classify = body.get("classify", False)
    if not isinstance(classify, bool):
        return _error(400, "'classify' must be a boolean")

    return await _run_analysis(
        points,
        body.get("epsilon_km", body.get("epsilon")),
        body.get("min_pts", body.get("minPts")),
        region_id=UPLOADED_REGION,
        mode=body.get("mode"),
        classify=classify,
    )


@router.post("/risk")
async def post_risk(request: Request) -> JSONResponse:
    """Classify one hotspot's risk. Used by the UI to retry a failed annotation.

    Body: {"accidentCount", "averageSeverity", "latitude", "longitude",
           "contributingFactors"}
    """
    from hotspot_server.main import get_analyzer

    try:
        risk_request = _parse_json_risk_request(json.loads(await request.body()))
    except (json.JSONDecodeError, UnicodeDecodeError):
        return _error(400, "invalid JSON")
    except _BadRequest as e:
        return _error(400, str(e))

    try:
        assessment = await get_analyzer().assess(risk_request)
    except ClassifierError:
        return JSONResponse(
            content={"success": False, "error": CLASSIFIER_FAILED_MESSAGE},
            status_code=502,
        )
    return JSONResponse(content={"success": True, "data": assessment.to_dict()})
