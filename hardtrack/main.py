# hardtrack/main.py
import logging

from fastapi import FastAPI
from sqlalchemy import exc as sa_exc

from hardtrack.config import settings
from hardtrack.database import engine, Base
from hardtrack.models import challenge, entry, fitness, profile  # noqa: F401  (register tables)
from hardtrack.routers import (
    challenges, dashboard, entries, fitness as fitness_router, friends, jobs,
    profile as profile_router, progress, tasks,
)

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="HardTrack - 75 Hard Challenge Tracker", version="1.0")

# Include Routers
app.include_router(profile_router.router)
app.include_router(challenges.router)
app.include_router(tasks.router)
app.include_router(entries.router)
app.include_router(progress.router)
app.include_router(friends.router)
app.include_router(dashboard.router)
app.include_router(fitness_router.router)
app.include_router(jobs.router)


# Create DB Tables (for local runs; use Alembic in prod)
@app.on_event("startup")
async def startup_event():
    # ignore duplicate-object errors from previous partial runs
    async with engine.begin() as conn:
        try:
            await conn.run_sync(Base.metadata.create_all)
        except sa_exc.IntegrityError as e:
            msg = str(getattr(e, "orig", e))
            if "duplicate key value violates unique constraint" in msg or "already exists" in msg:
                logging.warning("Ignored duplicate DDL error during create_all: %s", msg)
            else:
                raise


@app.get("/")
def read_root():
    return {"message": "Welcome to HardTrack"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("hardtrack.main:app", host="0.0.0.0", port=8000, reload=True)
