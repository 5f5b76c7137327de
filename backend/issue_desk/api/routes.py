from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from issue_desk.issues.errors import IssueError

router = APIRouter()


@router.get("/health")
def health():
    return {"status": "ok"}


def issue_error_handler(request: Request, exc: IssueError) -> JSONResponse:
    return JSONResponse(status_code=exc.http_status, content={"detail": exc.detail, "code": exc.code})
