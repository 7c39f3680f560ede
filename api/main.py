"""FastAPI service exposing local insights, bloom detection and record search."""

from __future__ import annotations

import logging
import os
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Optional

import duckdb
from dotenv import load_dotenv
from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from pipelines.bloom import InsufficientSeriesError, detect_bloom, peak_ndvi
from pipelines.insights import resolve_local_insights
from pipelines.model import NdviPoint
from pipelines.search import search_by_text
from storage.db import IN_MEMORY, OBSERVATIONS_TABLE, connect, insert_observations
from storage.exports import export_to_csv, export_to_parquet
from storage.records import RecordStore, get_record_store

DEFAULT_LIMIT = 200
MAX_LIMIT = 2000
ALLOWED_FORMATS = {"json", "csv", "parquet"}
load_dotenv()

logger = logging.getLogger(__name__)


class LocalInsightsRequest(BaseModel):
    lng: float = Field(..., ge=-180, le=180, description="Longitude of the query point.")
    lat: float = Field(..., ge=-90, le=90, description="Latitude of the query point.")
    start_date: Optional[str] = Field(default=None, alias="startDate")
    end_date: Optional[str] = Field(default=None, alias="endDate")

    model_config = ConfigDict(populate_by_name=True)


class BloomDetectRequest(BaseModel):
    ndvi_series: list[NdviPoint] = Field(default_factory=list, alias="ndviSeries")

    model_config = ConfigDict(populate_by_name=True)


@asynccontextmanager
async def lifespan(_: FastAPI):
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
    yield


app = FastAPI(title="Local Bloom Insights API", version="0.1.0", lifespan=lifespan)


def _configure_cors() -> None:
    raw_origins = os.getenv("API_CORS_ORIGINS", "*")
    origins = [origin.strip() for origin in raw_origins.split(",") if origin.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins or ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=True,
    )


_configure_cors()


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/local-insights")
def local_insights(
    body: LocalInsightsRequest,
    store: RecordStore = Depends(get_record_store),
) -> dict[str, Any]:
    try:
        resolution = resolve_local_insights(
            store.load_all(), body.lng, body.lat, body.start_date, body.end_date
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("local-insights failed at (%s, %s)", body.lng, body.lat)
        raise HTTPException(status_code=500, detail="Failed to compute local insights") from exc

    insights = resolution.to_insights()
    peak_date, intensity = peak_ndvi(insights.ndvi_series)
    return {
        "coords": {"lng": body.lng, "lat": body.lat},
        "peakBloomDate": peak_date,
        "bloomIntensity": intensity,
        **insights.model_dump(by_alias=True),
        "provenance": resolution.provenance(),
    }


@app.post("/bloom-detect")
def bloom_detect(body: BloomDetectRequest) -> dict[str, Any]:
    try:
        analysis = detect_bloom(body.ndvi_series)
    except InsufficientSeriesError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return analysis.model_dump(by_alias=True)


@app.get("/records/search")
def search_records(
    background_tasks: BackgroundTasks,
    q: str = Query(..., min_length=1, description="Text matched against record descriptors"),
    format: str = Query("json", description="Response format: json, csv, or parquet"),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT, description="Maximum records returned"),
    store: RecordStore = Depends(get_record_store),
):
    fmt = format.lower()
    if fmt not in ALLOWED_FORMATS:
        raise HTTPException(status_code=400, detail=f"Unsupported format '{format}'.")

    try:
        result = search_by_text(store.load_all(), q)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    matches = result.matches[:limit]

    if fmt == "json":
        payload = {
            "count": len(matches),
            "items": [record.model_dump(mode="json", by_alias=True) for record in matches],
            "points": {
                "type": "FeatureCollection",
                "features": result.points["features"][:limit],
            },
            "aoi": result.aoi,
        }
        return JSONResponse(content=payload)

    suffix = ".csv" if fmt == "csv" else ".parquet"
    media_type = "text/csv" if fmt == "csv" else "application/vnd.apache.parquet"
    filename = f"records{suffix}"
    with tempfile.NamedTemporaryFile(suffix=suffix, delete=False) as tmp:
        dest = Path(tmp.name)

    conn = connect(IN_MEMORY)
    try:
        insert_observations(conn, matches)
        query = f"SELECT * FROM {OBSERVATIONS_TABLE}"
        if fmt == "csv":
            export_to_csv(conn, dest, query=query)
        else:
            export_to_parquet(conn, dest, query=query)
    except duckdb.Error as exc:  # pragma: no cover - defensive
        dest.unlink(missing_ok=True)
        raise HTTPException(status_code=500, detail="Export failed") from exc
    finally:
        conn.close()

    def _cleanup(path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            pass

    background_tasks.add_task(_cleanup, dest)
    return FileResponse(dest, media_type=media_type, filename=filename, background=background_tasks)
