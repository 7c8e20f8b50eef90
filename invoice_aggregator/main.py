import logging
import sys

from fastapi import FastAPI
from invoice_aggregator.core.config import settings
from invoice_aggregator.api import health, generate_invoice
from invoice_aggregator.db.session import db

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stdout,
)

app = FastAPI(title=settings.PROJECT_NAME)

# Include routers
app.include_router(health.router)
app.include_router(generate_invoice.router)

@app.on_event("startup")
async def startup_event():
    await db.connect()

@app.on_event("shutdown")
async def shutdown_event():
    await db.disconnect()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
