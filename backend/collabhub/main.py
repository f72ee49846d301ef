"""ASGI entrypoint: FastAPI for HTTP, python-socketio for the realtime hub."""

from __future__ import annotations

from contextlib import asynccontextmanager

import socketio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from collabhub.api import ops, presence
from collabhub.domain.collab.sockets import CollabNamespace, set_namespace
from collabhub.infra import postgres
from collabhub.obs import init as obs_init
from collabhub.settings import settings


@asynccontextmanager
async def lifespan(app: FastAPI):
	await postgres.init_pool()
	try:
		yield
	finally:
		await postgres.close_pool()


app = FastAPI(title="Collab Hub", lifespan=lifespan)

allow_origins = list(settings.cors_allow_origins)
if not allow_origins:
	allow_origins = ["http://localhost:3000", "http://localhost:5173"] if settings.is_dev() else []

app.add_middleware(
	CORSMiddleware,
	allow_origins=allow_origins,
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)

# Same allowed origins for Socket.IO as for the REST API
sio = socketio.AsyncServer(async_mode="asgi", cors_allowed_origins=allow_origins)
collab_namespace = CollabNamespace()
sio.register_namespace(collab_namespace)
set_namespace(collab_namespace)
socket_app = socketio.ASGIApp(sio, other_asgi_app=app, socketio_path=settings.socketio_path)
obs_init(app)

app.include_router(ops.router, tags=["ops"])
app.include_router(presence.router, tags=["presence"])
