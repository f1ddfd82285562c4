# orderflow/main.py
from fastapi import FastAPI
from orderflow.data.database import Base, engine
from orderflow.api.routers import admin, carts, health, orders, users, wallets
from orderflow.utils.logging import get_logger
import uvicorn

logger = get_logger(__name__)

# IMPORT WSZYSTKICH MODELI NA POCZĄTKU (PRZED JAKIMKOLWIEK CREATE_ALL)
import orderflow.data.models  # noqa: E402,F401


def init_db() -> None:
    logger.info(f"Initializing database, models registered: {list(Base.metadata.tables.keys())}")
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created")
    except Exception as e:
        logger.error(f"Failed to create tables: {e}")
        raise


init_db()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Order Service",
        version="1.0.0",
    )

    # Include routers
    app.include_router(health.router)
    app.include_router(users.router)
    app.include_router(carts.router)
    app.include_router(orders.router)
    app.include_router(admin.router)
    app.include_router(wallets.router)

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
