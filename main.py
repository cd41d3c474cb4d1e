import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from courtroom.config import CORS_ORIGINS, LOG_LEVEL
from courtroom.routes import auth
from courtroom.api import cases
from courtroom.api import progress
from courtroom.api import simulation

logging.basicConfig(level=LOG_LEVEL)

app = FastAPI(title="Courtroom Trainer")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(cases.router)
app.include_router(progress.router)
app.include_router(simulation.router)

@app.get("/health")
async def health_check():
    return {"status": "ok"}
