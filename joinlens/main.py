import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse

from joinlens.config import JoinLensSettings, joinlens_settings
from joinlens.routers import analysis
from joinlens.security import require_basic_auth

logger = logging.getLogger(__name__)


def create_app(settings: JoinLensSettings) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("joinlens starting")
        yield
        logger.info("joinlens stopped")

    app = FastAPI(lifespan=lifespan)
    app.state.settings = settings
    app.include_router(analysis.router, dependencies=[Depends(require_basic_auth)])
    return app


app = create_app(joinlens_settings)


@app.get("/", response_class=HTMLResponse)
def read_root():
    html_content = """
    <html>
        <head>
            <title>joinlens</title>
            <style>
                body { font-family: Arial, sans-serif; margin: 40px; }
                pre { background: #f4f4f4; padding: 10px; border-radius: 5px; }
            </style>
        </head>
        <body>
            <p>joinlens version 1.0.0</p>
            <h3>Available endpoints:</h3>
            <h4>/docs - Swagger UI</h4>
            <h4>/tables - tables referenced by a query</h4>
            <pre>
curl -u "$USERNAME:$PASSWORD" \\
    -X POST http://localhost:8998/tables \\
    -H "Content-Type: application/json" \\
    -d '{"sql": "SELECT * FROM sales.orders o JOIN public.users u ON o.user_id = u.id"}'
            </pre>
            <h4>/joins - join predicates of a query</h4>
            <h4>/analyze - joins classified against table metrics</h4>
            <pre>
curl -u "$USERNAME:$PASSWORD" \\
    -X POST http://localhost:8998/analyze \\
    -H "Content-Type: application/json" \\
    -d '{
      "sql": "SELECT * FROM sales.orders o JOIN public.users u ON o.user_id = u.id",
      "metrics": [
        {"tablename": "orders", "diststyle": "KEY", "tbl_rows": 5000000,
         "skew_rows": 1.0, "stats_off": 2.5, "sortkey1": "order_date"}
      ]
    }'
            </pre>
            <h4>/health - table health readings, views hidden</h4>
        </body>
    </html>
    """
    return HTMLResponse(content=html_content)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(_request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content=jsonable_encoder({"detail": exc.errors(), "body": exc.body}),
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app, host=joinlens_settings.server.host, port=joinlens_settings.server.port
    )
