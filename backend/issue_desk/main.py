import os
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from issue_desk.api.routes import router as core_router, issue_error_handler
from issue_desk.api.issues_routes import router as issues_router
from issue_desk.api.admin_routes import router as admin_router
from issue_desk.issues.db import init_db
from issue_desk.issues.errors import IssueError
from issue_desk.logging_config import configure_logging

load_dotenv()
configure_logging()

app = FastAPI(title="Order Issue Desk", version="0.1.0")

origins = os.getenv("CORS_ORIGINS", "")
allow_origins = [o.strip() for o in origins.split(",") if o.strip()] or ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Init SQLite tables
init_db()

app.add_exception_handler(IssueError, issue_error_handler)

app.include_router(core_router)
app.include_router(issues_router)
app.include_router(admin_router)
