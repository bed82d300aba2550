from fastapi import FastAPI
from controllers.annotation import router as annotation_router
from controllers.cases import router as cases_router
from controllers.dashboard import router as dashboard_router
from controllers.health import router as health_router
from database.db import init_db


app = FastAPI(title="Forensic Detection Service")
init_db()
app.include_router(annotation_router)
app.include_router(cases_router)
app.include_router(dashboard_router)
app.include_router(health_router)


if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8080)
