from fastapi import FastAPI

from leadpoacher.config import get_settings
from leadpoacher.logging_utils import configure_logging
from leadpoacher.routers.jobs import router as jobs_router
from leadpoacher.routers.leads import router as leads_router
from leadpoacher.routers.progress import router as progress_router

settings = get_settings()
configure_logging(settings.log_level)

app = FastAPI(title=settings.app_name, version=settings.app_version)
app.include_router(jobs_router)
app.include_router(leads_router)
app.include_router(progress_router)


@app.get('/health')
async def health() -> dict[str, str]:
    return {'status': 'ok'}
