"""
HTTP and WebSocket transport for the batch orchestrator.
"""

import asyncio
import logging
from typing import Any, Dict, List, Set

from fastapi import APIRouter, FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from ..core.catalog import ToolCatalog
from ..core.orchestrator import BatchOrchestrator
from ..core.progress import ProgressSubscription
from ..errors import InstallerError, InvalidArgument, NotFound
from ..models.installation import Job
from ..models.progress import ProgressEvent, ProgressStatus
from ..models.tool import InstallRequest, ToolRecord, ToolSet
from .models import (
    ActiveInstallations,
    CancelResult,
    InstallStarted,
    InstallToolSetBody,
    InstallToolsBody,
)

logger = logging.getLogger(__name__)

INSTALL_PROGRESS = "install:progress"
INSTALL_COMPLETE = "install:complete"
INSTALL_ERROR = "install:error"


def _progress_message(event: ProgressEvent) -> Dict[str, Any]:
    return {"event": INSTALL_PROGRESS, **event.model_dump(mode="json")}


def create_app(orchestrator: BatchOrchestrator,
               catalog: ToolCatalog,
               title: str = "Tool Installer API",
               activity_limit: int = 50) -> FastAPI:
    """
    Build the FastAPI application around an orchestrator and catalog.

    Args:
        orchestrator: Batch orchestrator driving installations
        catalog: Catalog used to resolve tool ids and tool sets
        title: OpenAPI title
        activity_limit: Default number of activity entries returned
    """
    app = FastAPI(title=title)
    store = orchestrator.store

    @app.exception_handler(InvalidArgument)
    async def invalid_argument(request: Request, exc: InvalidArgument):
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(NotFound)
    async def not_found(request: Request, exc: NotFound):
        return JSONResponse(status_code=404, content={"error": str(exc)})

    @app.on_event("shutdown")
    async def drain_batches():
        await orchestrator.wait_closed()

    def tools_for(requests: List[InstallRequest]) -> List[ToolRecord]:
        return [store.get_tool(r.tool_id) for r in requests]

    install = APIRouter(prefix="/api/install", tags=["install"])

    @install.post("/tool", response_model=InstallStarted)
    async def install_tools(body: InstallToolsBody):
        requests = catalog.requests_for_tool_ids(body.ids())
        batch_id = await orchestrator.start_batch(requests)
        store.log_activity("install", f"Started installation of {len(requests)} tool(s)",
                           {"tools": [r.name for r in requests]})
        return InstallStarted(installation_id=batch_id, tools=tools_for(requests))

    @install.post("/toolset", response_model=InstallStarted)
    async def install_tool_set(body: InstallToolSetBody):
        tool_set, requests = catalog.requests_for_tool_set(body.tool_set_id)
        batch_id = await orchestrator.start_batch(requests)
        store.log_activity("install", f"Started installation of tool set: {tool_set.display_name}",
                           {"toolSet": tool_set.name, "tools": [r.name for r in requests]})
        return InstallStarted(installation_id=batch_id, tools=tools_for(requests),
                              tool_set=tool_set)

    @install.get("/progress/{job_id}", response_model=Job)
    async def installation_progress(job_id: int):
        return orchestrator.get_job_status(job_id)

    @install.delete("/cancel/{batch_id}", response_model=CancelResult)
    async def cancel_installation(batch_id: int):
        if not orchestrator.cancel_batch(batch_id):
            raise NotFound("Installation not found or already completed")
        store.log_activity("install", f"Cancelled installation {batch_id}")
        return CancelResult(success=True, message="Installation cancelled")

    @install.get("/active", response_model=ActiveInstallations)
    async def active_installations():
        return ActiveInstallations(installations=orchestrator.list_active_batches())

    tools = APIRouter(prefix="/api/tools", tags=["tools"])

    @tools.get("", response_model=List[ToolRecord])
    async def list_tools():
        return store.list_tools()

    @tools.get("/installed", response_model=List[ToolRecord])
    async def list_installed_tools():
        return store.list_installed_tools()

    @tools.get("/sets", response_model=List[ToolSet])
    async def list_tool_sets():
        return store.list_tool_sets()

    @app.get("/api/activity")
    async def recent_activity(limit: int = activity_limit):
        return {"activity": store.list_activity(limit)}

    @app.get("/health")
    async def health():
        return {"ok": True, "activeBatches": len(orchestrator.registry)}

    @app.websocket("/ws/install")
    async def install_socket(websocket: WebSocket):
        await websocket.accept()
        forwarders: Set[asyncio.Task] = set()
        subscriptions: List[ProgressSubscription] = []

        async def forward(subscription: ProgressSubscription):
            async for event in subscription:
                await websocket.send_json(_progress_message(event))

        try:
            while True:
                data = await websocket.receive_json()
                action = data.get("action", "start")

                if action == "start":
                    try:
                        if data.get("toolSet"):
                            _, requests = catalog.requests_for_tool_set(data["toolSet"])
                        else:
                            requests = catalog.requests_for_tool_ids(data.get("tools") or [])
                        batch_id = await orchestrator.start_batch(requests)
                    except InstallerError as e:
                        await websocket.send_json({"event": INSTALL_ERROR, "error": str(e)})
                        continue

                    # No await between start and subscribe, so no event is missed
                    subscription = orchestrator.subscribe(batch_id)
                    subscriptions.append(subscription)
                    await websocket.send_json(_progress_message(ProgressEvent(
                        batch_id=batch_id,
                        status=ProgressStatus.STARTED,
                        message="Installation started"
                    )))
                    task = asyncio.create_task(forward(subscription))
                    forwarders.add(task)
                    task.add_done_callback(forwarders.discard)

                elif action == "cancel":
                    batch_id = data.get("installationId")
                    if isinstance(batch_id, int) and orchestrator.cancel_batch(batch_id):
                        await websocket.send_json({
                            "event": INSTALL_COMPLETE,
                            "installationId": batch_id,
                            "status": ProgressStatus.CANCELLED.value,
                            "message": "Installation cancelled"
                        })
                    else:
                        await websocket.send_json({
                            "event": INSTALL_ERROR,
                            "error": "Installation not found or already completed"
                        })

                else:
                    await websocket.send_json({"event": INSTALL_ERROR,
                                               "error": f"Unknown action: {action}"})
        except WebSocketDisconnect:
            logger.info("Install socket disconnected")
        finally:
            for subscription in subscriptions:
                subscription.close()
            for task in list(forwarders):
                task.cancel()

    app.include_router(install)
    app.include_router(tools)
    return app
