"""Frontend HTML routes served from PUBLIC_DIR."""

from pathlib import Path

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import FileResponse

from app.config import settings

router = APIRouter(tags=["Pages"], include_in_schema=False)


def _page(name: str) -> FileResponse:
    path = Path(settings.public_dir) / name
    if not path.is_file():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    return FileResponse(path, media_type="text/html")


@router.get("/edit/{post_id}")
async def edit_page(post_id: int) -> FileResponse:  # noqa: ARG001
    return _page("edit.html")


@router.get("/post/{post_id}")
async def post_page(post_id: int) -> FileResponse:  # noqa: ARG001
    return _page("post.html")


@router.get("/shorts")
async def shorts_page() -> FileResponse:
    return _page("shorts.html")


@router.get("/upload")
async def upload_page() -> FileResponse:
    return _page("upload.html")
