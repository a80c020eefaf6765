import time

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from logging_config import setup_logging, get_logger
from area_profile import SOURCES, profile_postcode
from data_sources.cache import clear_cache, get_cache_stats, cleanup_expired_cache
from data_sources.error_handling import LocationNotFoundError
from data_sources.http_client import close_session
from data_sources.settings import get_settings
from data_sources.telemetry import get_telemetry_stats

VERSION = "1.0.0"

DATA_SOURCES = [
    "Postcodes.io (geocoding)",
    "Police UK (street crime)",
    "Environment Agency Flood Monitoring (stations, warnings)",
    "HM Land Registry Price Paid Data (SPARQL)",
    "Environment Agency Bathing Water Quality",
    "NBN Atlas (species occurrence)",
    "Historic England NHLE (listed buildings)",
    "Woodland Trust Ancient Tree Inventory",
    "Natural England (SSSI, NNR, Country Parks, CRoW access land)",
    "Storm overflow Event Duration Monitoring",
    "Open-Meteo Climate API (CMIP6 projections)",
]

settings = get_settings()
setup_logging(level=settings.log_level, json_format=settings.log_json)
logger = get_logger(__name__)


app = FastAPI(
    title="UK Area Profile API",
    description="Composite open-data profile for a UK postcode",
    version=VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
def root():
    """Health check endpoint."""
    return {
        "service": "UK Area Profile API",
        "status": "running",
        "version": VERSION,
        "sections": ["location"] + list(SOURCES.keys()),
        "endpoints": {
            "profile": "/area/{postcode}",
            "docs": "/docs"
        }
    }


@app.get("/area/{postcode}")
async def get_area_profile(postcode: str):
    """
    Build the area profile for a UK postcode.

    Every section other than `location` is null when its source is unavailable.

    Parameters:
        postcode: UK postcode, any case or spacing (e.g. "sw1a 1aa")

    Returns:
        JSON with location, one section per source, and per-source availability
    """
    start_time = time.time()
    request_id = f"req_{int(start_time * 1000)}"

    logger.info("Starting area profile request", extra={
        "request_id": request_id,
        "postcode": postcode
    })

    try:
        profile = await profile_postcode(postcode, request_id=request_id)
    except LocationNotFoundError:
        logger.info("Postcode not found", extra={
            "request_id": request_id,
            "postcode": postcode
        })
        raise HTTPException(status_code=404, detail="Postcode not found")

    response = profile.to_json()
    response["metadata"] = {
        "version": VERSION,
        "requestId": request_id,
        "responseTimeSeconds": round(time.time() - start_time, 2),
        "cacheTtlSeconds": settings.cache_ttl,
        "dataSources": DATA_SOURCES,
    }
    return response


@app.get("/health")
async def health_check():
    """Health check with configured sources and cache state."""
    cleanup_expired_cache()
    cache_stats = await get_cache_stats()

    disabled = settings.disabled_sources
    return {
        "status": "healthy",
        "version": VERSION,
        "sources": {
            name: "disabled" if name in disabled else "enabled"
            for name in SOURCES
        },
        "request_timeout_seconds": settings.request_timeout,
        "cache_stats": cache_stats,
    }


@app.post("/cache/clear")
async def clear_cache_endpoint(cache_type: str = None):
    """Clear cache entries."""
    try:
        await clear_cache(cache_type)
        return {
            "status": "success",
            "message": f"Cache cleared for {cache_type or 'all'}"
        }
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Cache clear failed: {e}")


@app.get("/cache/stats")
async def cache_stats_endpoint():
    """Get cache statistics."""
    try:
        stats = await get_cache_stats()
        return {
            "status": "success",
            "cache_stats": stats
        }
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Cache stats failed: {e}")


@app.get("/telemetry")
def telemetry_endpoint():
    """Get per-source availability and latency."""
    return {
        "status": "success",
        "telemetry": get_telemetry_stats()
    }


# Startup and shutdown events
@app.on_event("startup")
async def startup_event():
    logger.info("Starting Area Profile API server")


@app.on_event("shutdown")
async def shutdown_event():
    """Close the shared upstream session."""
    logger.info("Shutting down Area Profile API server")
    await close_session()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
