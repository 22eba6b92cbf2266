from dotenv import load_dotenv

load_dotenv()

import os
import logging

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
import uvicorn

from database import init_db
from route_modules import combined_router
from service_modules.upload_helper import UPLOAD_DIR

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger("studio_app")

app = FastAPI(title="Vista Studio API")

os.makedirs(UPLOAD_DIR, exist_ok=True)
app.mount("/static/uploads", StaticFiles(directory=UPLOAD_DIR), name="uploads")
app.include_router(combined_router)


@app.on_event("startup")
async def startup_event():
    init_db()
    logger.info("Database tables ready")


@app.middleware("http")
async def add_no_cache_header(request, call_next):
    response = await call_next(request)
    # API responses carry balances; never cache them
    response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate, max-age=0, private"
    response.headers["Pragma"] = "no-cache"
    response.headers["Expires"] = "0"
    return response


@app.get("/api/health")
async def health_check():
    return {"status": "ok"}


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 9007))
    uvicorn.run(app, host="0.0.0.0", port=port)
