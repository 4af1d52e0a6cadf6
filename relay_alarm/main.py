import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from relay_alarm.api import api_router
from relay_alarm.core.config.store import SettingsStore
from relay_alarm.core.env_settings import EnvSettings, env
from relay_alarm.core.errors import RelayCommandError
from relay_alarm.core.state import SystemState
from relay_alarm.core.users import UserStore
from relay_alarm.services.broadcast import BroadcastHub
from relay_alarm.services.commands import AlarmController
from relay_alarm.services.scheduler import SchedulerLoop, epoch_ms

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)  # Set to DEBUG for more verbose logging


def build_controller(settings: EnvSettings, state: SystemState, hub: BroadcastHub, store: SettingsStore, clock=epoch_ms) -> AlarmController:
    scheduler = SchedulerLoop(state, hub, store, clock=clock, interval_ms=settings.TICK_INTERVAL_MS)
    return AlarmController(scheduler, test_duration_ms=settings.TEST_DURATION_MS)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: EnvSettings = app.state.settings
    logger.info("Starting up...")

    store = SettingsStore(settings.settings_path, settings.RELAY_IDS)
    config = await store.load()
    users = UserStore(settings.users_path)
    users.load()

    hub = BroadcastHub()
    controller = build_controller(settings, SystemState.from_config(config), hub, store)
    app.state.store = store
    app.state.users = users
    app.state.hub = hub
    app.state.controller = controller

    # Resume or clear whatever was in flight when the service last stopped
    controller.scheduler.evaluate_now()
    hub.start_keepalive(settings.PING_INTERVAL_S, controller.snapshot)

    logger.info("Order webhook: POST /webhook/order?secret=<ORDER_WEBHOOK_SECRET>")
    logger.info("Device WebSocket: /ws/device?secret=<DEVICE_SECRET>")
    logger.info("Dashboard WebSocket: /ws/dashboard?token=<JWT>")
    yield

    logger.info("Shutting down...")
    controller.scheduler.stop()
    await hub.close_all()
    store.schedule_save(controller.state.to_config())
    await store.flush()


def create_app(settings: Optional[EnvSettings] = None) -> FastAPI:
    settings = settings or env
    app = FastAPI(title=settings.APP_NAME, description="Relay alarm control service", lifespan=lifespan)
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RelayCommandError)
    async def command_error_handler(request: Request, exc: RelayCommandError):
        logger.info(f"Rejected command on {request.url.path}: {exc}")
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"message": "Internal server error"},
        )

    @app.get("/")
    async def read_root():
        return {"message": f"{settings.APP_NAME} is running"}

    app.include_router(api_router)
    return app


logging.basicConfig(
    level=env.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

app = create_app()

# If running as a script
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "relay_alarm.main:app",
        host=env.HOST,
        port=env.PORT,
        ws_ping_interval=env.PING_INTERVAL_S,
    )
