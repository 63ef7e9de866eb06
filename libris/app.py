#!/usr/bin/env python3

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from libris.routes import api
from libris.configs import OPTIONS, ALLOWED_ORIGINS
from libris import __version__ as VERSION

app = FastAPI(
    title="Libris API",
    description="Libris: university library lending and document access",
    version=VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api.router, prefix="/v1/api")

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("libris.app:app", **OPTIONS)
