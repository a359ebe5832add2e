"""
DIS Recorder REST API Server

FastAPI control surface over a RecorderController: recording, replay,
exercise management, analyzers and status.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional
import logging

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from recorder import RecorderController, create_analyzer, available_analyzers
from recorder.constants import DEFAULT_SPEED_FACTOR

logger = logging.getLogger("DISRec.API")

API_VERSION = "1.0.0"


class RecordingRequest(BaseModel):
    """Start recording request"""
    exercise_id: str = Field(..., min_length=1)


class ReplayRequest(BaseModel):
    """Start replay request"""
    exercise_id: str = Field(..., min_length=1)
    speed_factor: float = Field(DEFAULT_SPEED_FACTOR, gt=0)
    wait: bool = False


class StopReplayRequest(BaseModel):
    """Stop replay request"""
    wait: bool = True


class AnalyzerRequest(BaseModel):
    """Add analyzer request"""
    kind: str


class ControlResponse(BaseModel):
    """Result of a control operation"""
    success: bool
    message: str
    exercise_id: Optional[str] = None


class ReplayResponse(BaseModel):
    """Result of a replay operation"""
    success: bool
    message: str
    exercise_id: Optional[str] = None
    speed_factor: Optional[float] = None
    result: Optional[Dict[str, Any]] = None


class RecorderAPI:
    """
    DIS Recorder REST API

    Provides HTTP endpoints for:
    - Recording start/stop
    - Replay start/stop
    - Exercise listing and clearing
    - Analyzer registration
    - Status
    """

    def __init__(self, controller: RecorderController):
        """
        Initialize API with a controller.

        Args:
            controller: Controller the endpoints delegate to
        """
        self.controller = controller

        @asynccontextmanager
        async def lifespan(app: FastAPI):
            yield
            await self.controller.shutdown()

        self.app = FastAPI(
            title="DIS Recorder API",
            description="Record and replay DIS PDUs from a multicast exercise",
            version=API_VERSION,
            lifespan=lifespan,
        )

        self._register_routes()

    def _register_routes(self):
        """Register API routes"""
        controller = self.controller

        @self.app.get("/health")
        async def health():
            """Health check"""
            return {
                "status": "healthy",
                "recording": controller.is_recording,
                "replaying": controller.is_replaying,
                "timestamp": datetime.now().isoformat(),
            }

        @self.app.get("/api/status")
        async def get_status():
            """Recorder and replayer status"""
            return controller.get_status()

        @self.app.get("/api/exercises")
        async def list_exercises():
            """Recorded exercises with their PDU counts"""
            summary = controller.get_exercise_summary()
            return {
                "exercises": [
                    {"exercise_id": exercise_id, "pdu_count": count}
                    for exercise_id, count in summary.items()
                ],
                "count": len(summary),
            }

        @self.app.delete("/api/exercises/{exercise_id}", response_model=ControlResponse)
        async def clear_exercise(exercise_id: str):
            """Clear every PDU recorded for an exercise"""
            if not await controller.clear_exercise(exercise_id):
                raise HTTPException(status_code=422, detail=f"Cannot clear exercise {exercise_id!r}")
            return ControlResponse(success=True, message="Exercise cleared", exercise_id=exercise_id)

        @self.app.post("/api/recording/start", response_model=ControlResponse)
        async def start_recording(request: RecordingRequest):
            """Start recording an exercise"""
            if not await controller.start_recording(request.exercise_id):
                current = controller.current_recording_exercise_id
                detail = (
                    f"Already recording exercise {current!r}" if current
                    else "Recording could not be started"
                )
                raise HTTPException(status_code=409, detail=detail)
            return ControlResponse(success=True, message="Recording started", exercise_id=request.exercise_id)

        @self.app.post("/api/recording/stop", response_model=ControlResponse)
        async def stop_recording():
            """Stop the active recording"""
            exercise_id = controller.current_recording_exercise_id
            if not await controller.stop_recording():
                raise HTTPException(status_code=409, detail="Not currently recording")
            return ControlResponse(success=True, message="Recording stopped", exercise_id=exercise_id)

        @self.app.post("/api/replay/start", response_model=ReplayResponse)
        async def start_replay(request: ReplayRequest):
            """Start replaying an exercise, optionally waiting for it to finish"""
            started, future = await controller.start_replay(request.exercise_id, request.speed_factor)
            if not started:
                if future is not None and future.done():
                    detail = future.result().error or "Replay failed to start"
                else:
                    current = controller.current_replay_exercise_id
                    detail = f"Already replaying exercise {current!r}" if current else "Replay could not be started"
                raise HTTPException(status_code=409, detail=detail)

            result = None
            if request.wait or future.done():
                result = (await future).to_dict()

            return ReplayResponse(
                success=True,
                message="Replay finished" if result else "Replay started",
                exercise_id=request.exercise_id,
                speed_factor=request.speed_factor,
                result=result,
            )

        @self.app.post("/api/replay/stop", response_model=ReplayResponse)
        async def stop_replay(request: Optional[StopReplayRequest] = None):
            """Stop the active replay"""
            request = request or StopReplayRequest()
            was_replaying = controller.is_replaying
            exercise_id = controller.current_replay_exercise_id
            future = await controller.stop_replay()

            result = None
            if request.wait or future.done():
                result = (await future).to_dict()

            return ReplayResponse(
                success=True,
                message="Replay stopped" if was_replaying else "Not currently replaying",
                exercise_id=exercise_id,
                result=result,
            )

        @self.app.get("/api/analyzers")
        async def list_analyzers():
            """Registered analyzers and available analyzer types"""
            analyzers: List[Dict[str, Any]] = [a.to_dict() for a in controller.get_analyzers()]
            return {"analyzers": analyzers, "available": available_analyzers()}

        @self.app.post("/api/analyzers", response_model=ControlResponse)
        async def add_analyzer(request: AnalyzerRequest):
            """Attach a new analyzer to the recorder"""
            try:
                analyzer = create_analyzer(request.kind)
            except ValueError as e:
                raise HTTPException(status_code=422, detail=str(e))

            if controller.get_analyzer(analyzer.name) is not None:
                raise HTTPException(status_code=409, detail=f"Analyzer already registered: {analyzer.name}")
            if not controller.add_analyzer(analyzer):
                raise HTTPException(status_code=409, detail=f"Analyzer not added: {analyzer.name}")
            return ControlResponse(success=True, message=f"Added analyzer: {analyzer.name}")

        @self.app.delete("/api/analyzers/{name}", response_model=ControlResponse)
        async def remove_analyzer(name: str):
            """Detach analyzers by name"""
            if not controller.remove_analyzer_by_name(name):
                raise HTTPException(status_code=404, detail=f"Analyzer not registered: {name}")
            return ControlResponse(success=True, message=f"Removed analyzer: {name}")


def create_api_server(controller: RecorderController, host: str = "0.0.0.0", port: int = 8080):
    """
    Create and configure the DIS Recorder API server.

    Args:
        controller: Controller to expose
        host: Host to bind to
        port: Port to listen on

    Returns:
        Tuple of (RecorderAPI, uvicorn server config)
    """
    api = RecorderAPI(controller)

    return api, {
        "app": api.app,
        "host": host,
        "port": port,
        "log_level": "info",
    }
