"""FastAPI server for the pizza order simulator."""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import APIRouter, Body, FastAPI
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from .config import ServiceSettings
from .exceptions import BackendError, ConfigurationError
from .logger import logger
from .schemas import OrdersRequest, SimulationRequest
from .simulation import SimulationHandler

settings = ServiceSettings.from_env()
handler = SimulationHandler(settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log the effective defaults on startup.

    Args:
        app: The FastAPI application instance
    """
    logger.info(
        f"Simulator ready | minThreads={settings.min_threads} | maxThreads={settings.max_threads} | "
        f"batchTimeout={settings.batch_timeout}"
    )
    yield
    logger.info("Simulator shutting down")


app = FastAPI(title="Pizza Order Simulator", lifespan=lifespan)
router = APIRouter()


@router.get("/health")
def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy"}


@router.get("/health/ready")
def readiness_check():
    """Report the defaults a batch without overrides would use.

    Returns:
        dict: Readiness status and effective thread defaults.
    """
    return {
        "status": "ready",
        "min_threads": settings.min_threads,
        "max_threads": settings.max_threads,
        "batch_timeout": settings.batch_timeout,
    }


@router.post("/simulator", status_code=202)
def create_orders(payload: Any = Body(default=None)):
    """Generate and dispatch a batch of synthetic orders.

    Runs in FastAPI's thread pool because the batch blocks until every task
    has reported.

    Args:
        payload: ``{"sim-config": {...}}`` request body.

    Returns:
        JSONResponse: 202 with per-order outcomes, 400 for a malformed
        request, 500 when the batch cannot be built.
    """
    if not isinstance(payload, dict) or "sim-config" not in payload:
        return JSONResponse(status_code=400, content={"error": "No sim-config provided"})

    try:
        request = SimulationRequest.model_validate(payload)
    except ValidationError as e:
        logger.warning(f"Rejected sim-config: {e.error_count()} error(s)")
        return JSONResponse(
            status_code=400,
            content={"error": "problem with json config", "error-mess": _describe(e)},
        )

    sim_config = request.sim_config
    logger.info(
        f"Received simulation | num-orders={sim_config.num_orders} | pizza-status={sim_config.pizza_status} | "
        f"backend={sim_config.backend_selector}"
    )
    try:
        result = handler.run(sim_config)
    except ConfigurationError as e:
        logger.error(f"ERROR createOrders: {e}")
        return JSONResponse(status_code=500, content={"error": "problem with order creation", "detail": str(e)})
    except Exception as e:
        logger.exception(f"ERROR createOrders: {e}")
        return JSONResponse(status_code=500, content={"error": "problem with order creation"})

    return JSONResponse(status_code=202, content=result.to_response())


@router.post("/simulator/orders")
def list_orders(payload: Any = Body(default=None)):
    """List the orders stored by the orchestrator.

    Args:
        payload: ``{"microservice": {...}}`` naming the orchestrator.

    Returns:
        JSONResponse: 200 with the orchestrator's orders, 400 for a malformed
        request, 502 when the orchestrator fails.
    """
    if not isinstance(payload, dict) or "microservice" not in payload:
        return JSONResponse(status_code=400, content={"error": "No microservice config provided"})

    try:
        request = OrdersRequest.model_validate(payload)
    except ValidationError as e:
        return JSONResponse(
            status_code=400,
            content={"error": "problem with json config", "error-mess": _describe(e)},
        )

    try:
        orders = handler.list_orders(request.microservice)
    except BackendError as e:
        logger.error(f"ERROR getAllOrders: {e}")
        return JSONResponse(status_code=502, content={"error": "orchestrator unavailable", "detail": str(e)})

    return {"orders": orders}


def _describe(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = " -> ".join(str(part) for part in item["loc"])
        parts.append(f"{location}: {item['msg']}" if location else item["msg"])
    return "; ".join(parts)


app.include_router(router)
logger.info("API router mounted.")
