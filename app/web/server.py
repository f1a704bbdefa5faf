"""
FastAPI web server for the trade journal importer.

Provides the import wizard API:
- Data sources and broker timezones
- Import sessions (upload, mapping, options, run)
- Destination accounts
"""

import logging

from fastapi import FastAPI

from app import __version__
from app.journal.models import init_db
from app.logging_utils import install_log_safety
from app.web.routes import accounts_router, imports_router, system_router

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Trade Journal Importer",
    description="Import broker reports into the trade journal",
    version=__version__,
)


@app.on_event("startup")
async def startup():
    install_log_safety()
    init_db()


app.include_router(system_router)
app.include_router(imports_router)
app.include_router(accounts_router)


# ==================== RUN SERVER ====================

def run_server(host: str = "127.0.0.1", port: int = 8000):
    """Run the web server."""
    import uvicorn
    print(f"\n📥 Trade Journal Importer")
    print(f"   API at http://{host}:{port}/docs\n")
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run_server()
