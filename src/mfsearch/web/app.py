"""FastAPI application exposing the tools over HTTP."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Dict, List

from fastapi import Body, Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from mfsearch.config import AppConfig
from mfsearch.search.engine import SearchEngine
from mfsearch.tools import TOOLS, invoke_tool

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="mfsearch", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


class ToolInfo(BaseModel):
    name: str
    description: str


class TextContent(BaseModel):
    type: str = "text"
    text: str


class ToolResponse(BaseModel):
    tool: str
    content: List[TextContent]


@lru_cache(maxsize=1)
def get_engine() -> SearchEngine:
    config = AppConfig.from_env()
    engine = SearchEngine.from_config(config)
    LOGGER.info("Serving %s", engine.store.db_path)
    return engine


@app.on_event("startup")
async def startup_event() -> None:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/tools")
async def list_tools() -> dict[str, List[ToolInfo]]:
    return {"tools": [ToolInfo(name=t.name, description=t.description) for t in TOOLS.values()]}


@app.post("/tools/{name}")
async def call_tool(
    name: str,
    arguments: Dict[str, Any] | None = Body(default=None),
    engine: SearchEngine = Depends(get_engine),
) -> ToolResponse:
    if name not in TOOLS:
        raise HTTPException(status_code=404, detail=f"Unknown tool: {name}")
    text = await invoke_tool(engine, name, arguments or {})
    return ToolResponse(tool=name, content=[TextContent(text=text)])
