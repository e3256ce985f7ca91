import os

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from zapdesk.database import get_db
from zapdesk.logging_config import setup_logging
from zapdesk.models import AgentProfile, Contact, Conversation, Message
from zapdesk.routers import admin, alerts, distribution, webhook

setup_logging()

app = FastAPI(
    title="zapdesk API",
    description="WhatsApp helpdesk backend: gateway webhook, agent distribution, chatbot trigger",
    version="0.1.0",
)

cors_env = os.environ.get("CORS_ALLOW_ORIGINS", "*")
cors_origins = [origin.strip() for origin in cors_env.split(",") if origin.strip()]
if not cors_origins:
    cors_origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(webhook.router)
app.include_router(distribution.router)
app.include_router(alerts.router)
app.include_router(admin.router)


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/db-check")
def db_check(db: Session = Depends(get_db)):
    return {
        "status": "ok",
        "contatos": db.query(Contact).count(),
        "conversas": db.query(Conversation).count(),
        "mensagens": db.query(Message).count(),
        "profiles": db.query(AgentProfile).count(),
    }
