import logging
import os
import time

from fastapi import FastAPI, Request

from api.routers import events, ops, schedule, tasks
from schedule_ai.metrics import REQUEST_LATENCY_SECONDS, REQUESTS_TOTAL

# Logging configuration
logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logging.getLogger("googleapiclient").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)

app = FastAPI(title="schedule-ai")

app.include_router(events.router)
app.include_router(tasks.router)
app.include_router(schedule.router)
app.include_router(ops.router)


@app.middleware("http")
async def observe_requests(request: Request, call_next):
    start = time.time()
    endpoint = request.url.path
    status = "error"
    try:
        response = await call_next(request)
        status = str(response.status_code)
        return response
    finally:
        if endpoint != "/metrics":
            REQUESTS_TOTAL.labels(endpoint=endpoint, status=status).inc()
            REQUEST_LATENCY_SECONDS.labels(endpoint=endpoint).observe(time.time() - start)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
