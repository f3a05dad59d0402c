# slidesmith/main.py
import io
import re
from datetime import datetime
from typing import Optional
from urllib.parse import quote

import uvicorn
from fastapi import Depends, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse, StreamingResponse

from .config import HOST, LOG_LEVEL, LOG_PATH, PORT
from .editor import PresentationEditor
from .errors import (
    ContentPolicyError,
    DialogBusyError,
    ExportError,
    ExtractionError,
    MissingApiKeyError,
    ProviderError,
    SlidesmithError,
    WorkflowError,
)
from .layouts import LEFT, RIGHT
from .logging_utils import setup_logging
from .schemas import SlideUpdate
from .settings_store import SettingsStore
from .templates import TEMPLATES
from .workflow import Workspace

app = FastAPI(title="slidesmith", version="1.0.0", docs_url="/docs")

# most specific first
ERROR_STATUS = [
    (MissingApiKeyError, 400),
    (ContentPolicyError, 422),
    (ProviderError, 502),
    (ExtractionError, 422),
    (ExportError, 500),
    (DialogBusyError, 409),
    (WorkflowError, 409),
]

_workspace: Optional[Workspace] = None


def get_workspace() -> Workspace:
    global _workspace
    if _workspace is None:
        _workspace = Workspace(SettingsStore())
    return _workspace


def get_editor(ws: Workspace = Depends(get_workspace)) -> PresentationEditor:
    return ws.require_editor()


@app.exception_handler(SlidesmithError)
async def slidesmith_error_handler(request: Request, exc: SlidesmithError):
    status = next((code for cls, code in ERROR_STATUS if isinstance(exc, cls)), 500)
    return JSONResponse(status_code=status, content={"detail": str(exc)})


def _editor_state(editor: PresentationEditor) -> dict:
    return {
        "presentation": editor.presentation.model_dump(mode="json"),
        "selected_index": editor.selected_index,
    }


def _content_disposition(filename: str) -> str:
    # header values are latin-1; non-ASCII names go in the RFC 5987 form
    fallback = re.sub(r'[^A-Za-z0-9._-]', "_", filename)
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"


def _workspace_state(ws: Workspace) -> dict:
    return {
        "state": ws.state.value,
        "error": ws.error,
        "outline": [s.model_dump(mode="json") for s in ws.outline.slides] if ws.outline else None,
    }


@app.get("/healthz")
def healthz():
    return {"ok": True, "ts": datetime.utcnow().isoformat() + "Z"}


# ---------------- settings ----------------
@app.get("/api/settings")
def get_settings(ws: Workspace = Depends(get_workspace)):
    return ws.settings.to_dict()


@app.put("/api/settings/provider")
def put_provider(provider: str = Form(...), ws: Workspace = Depends(get_workspace)):
    try:
        ws.select_provider(provider)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ws.settings.to_dict()


@app.put("/api/settings/model")
def put_model(model: str = Form(...), ws: Workspace = Depends(get_workspace)):
    try:
        ws.select_model(model)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ws.settings.to_dict()


@app.put("/api/settings/api-key")
def put_api_key(
    provider: str = Form(...),
    api_key: str = Form(..., description="Stored locally, never logged"),
    ws: Workspace = Depends(get_workspace),
):
    try:
        ws.set_api_key(provider, api_key)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ws.settings.to_dict()


@app.put("/api/settings/theme")
def put_theme(theme: str = Form(...), ws: Workspace = Depends(get_workspace)):
    try:
        ws.set_theme(theme)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ws.settings.to_dict()


# ---------------- document & outline ----------------
@app.get("/api/workspace")
def get_workspace_state(ws: Workspace = Depends(get_workspace)):
    return _workspace_state(ws)


@app.post("/api/document")
async def upload_document(
    document: UploadFile = File(..., description="Source document (.txt, .md, .pdf or .docx)"),
    language: str = Form("EN", description="Outline language: EN or ZH_TW"),
    ws: Workspace = Depends(get_workspace),
):
    contents = await document.read()
    await ws.process_document(document.filename or "document.txt", contents, language)
    return _workspace_state(ws)


@app.put("/api/outline/{slide_index}/title")
def put_outline_title(slide_index: int, text: str = Form(...), ws: Workspace = Depends(get_workspace)):
    try:
        ws.require_outline().set_title(slide_index, text)
    except IndexError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _workspace_state(ws)


@app.put("/api/outline/{slide_index}/content/{content_index}")
def put_outline_point(slide_index: int, content_index: int, text: str = Form(...),
                      ws: Workspace = Depends(get_workspace)):
    ws.require_outline().set_content_point(slide_index, content_index, text)
    return _workspace_state(ws)


@app.post("/api/outline/confirm")
def confirm_outline(ws: Workspace = Depends(get_workspace)):
    ws.confirm_outline()
    return _workspace_state(ws)


@app.post("/api/outline/back")
def back_to_outline(ws: Workspace = Depends(get_workspace)):
    ws.back_to_outline()
    return _workspace_state(ws)


@app.get("/api/templates")
def list_templates():
    return [t.model_dump() for t in TEMPLATES]


@app.post("/api/presentation")
def create_presentation(template_id: str = Form(...), ws: Workspace = Depends(get_workspace)):
    try:
        ws.select_template(template_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _editor_state(ws.editor)


@app.post("/api/new")
def new_presentation(ws: Workspace = Depends(get_workspace)):
    ws.new_presentation()
    return _workspace_state(ws)


# ---------------- presentation editing ----------------
@app.get("/api/presentation")
def get_presentation(editor: PresentationEditor = Depends(get_editor)):
    return _editor_state(editor)


@app.put("/api/presentation/title")
def put_presentation_title(title: str = Form(...), editor: PresentationEditor = Depends(get_editor)):
    editor.set_title(title)
    return _editor_state(editor)


@app.put("/api/selection")
def put_selection(index: int = Form(...), editor: PresentationEditor = Depends(get_editor)):
    editor.select(index)
    return _editor_state(editor)


@app.post("/api/slides")
def add_slide(editor: PresentationEditor = Depends(get_editor)):
    editor.add_slide()
    return _editor_state(editor)


@app.delete("/api/slides/{index}")
def delete_slide(index: int, editor: PresentationEditor = Depends(get_editor)):
    editor.delete_slide(index)
    return _editor_state(editor)


@app.post("/api/slides/reorder")
def reorder_slides(from_index: int = Form(...), to_index: int = Form(...),
                   editor: PresentationEditor = Depends(get_editor)):
    editor.reorder(from_index, to_index)
    return _editor_state(editor)


@app.patch("/api/slides/{index}")
def patch_slide(index: int, update: SlideUpdate, editor: PresentationEditor = Depends(get_editor)):
    editor.update_slide(index, **update.model_dump(exclude_unset=True))
    return _editor_state(editor)


@app.put("/api/slides/{index}/transition")
def put_transition(index: int, transition: str = Form(...), editor: PresentationEditor = Depends(get_editor)):
    try:
        editor.set_transition(index, transition)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _editor_state(editor)


@app.delete("/api/slides/{index}/image")
def delete_image(index: int, editor: PresentationEditor = Depends(get_editor)):
    editor.remove_image(index)
    return _editor_state(editor)


def _check_column(column: Optional[str]) -> None:
    if column is not None and column not in (LEFT, RIGHT):
        raise HTTPException(status_code=400, detail=f"Unknown column: {column}")


@app.post("/api/slides/{index}/bullets")
def add_bullet(index: int, editor: PresentationEditor = Depends(get_editor)):
    editor.add_bullet(index)
    return _editor_state(editor)


@app.put("/api/slides/{index}/bullets/{content_index}")
def put_bullet(index: int, content_index: int, text: str = Form(...),
               column: Optional[str] = Form(None, description="left/right for two-column slides"),
               editor: PresentationEditor = Depends(get_editor)):
    _check_column(column)
    if column is not None:
        editor.edit_column_bullet(index, column, content_index, text)
    else:
        editor.edit_content(index, content_index, text)
    return _editor_state(editor)


@app.delete("/api/slides/{index}/bullets/{content_index}")
def delete_bullet(index: int, content_index: int, column: Optional[str] = None,
                  editor: PresentationEditor = Depends(get_editor)):
    _check_column(column)
    if column is not None:
        editor.delete_column_bullet(index, column, content_index)
    else:
        editor.delete_bullet(index, content_index)
    return _editor_state(editor)


# ---------------- AI dialogs ----------------
@app.post("/api/refine")
async def open_refine(
    slide_index: int = Form(...),
    content_index: int = Form(..., description="-1 refines the slide title"),
    text: Optional[str] = Form(None),
    editor: PresentationEditor = Depends(get_editor),
):
    try:
        dialog = editor.open_refine(slide_index, content_index, text)
    except IndexError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return dialog.to_dict()


@app.get("/api/refine")
def get_refine(editor: PresentationEditor = Depends(get_editor)):
    if editor.refine_dialog is None:
        raise HTTPException(status_code=404, detail="No refine dialog is open")
    return editor.refine_dialog.to_dict()


@app.post("/api/refine/accept")
def accept_refine(editor: PresentationEditor = Depends(get_editor)):
    if editor.refine_dialog is None:
        raise HTTPException(status_code=404, detail="No refine dialog is open")
    if editor.refine_dialog.result is None:
        raise HTTPException(status_code=409, detail="The refined text is not ready yet")
    editor.accept_refine()
    return _editor_state(editor)


@app.delete("/api/refine")
def close_refine(editor: PresentationEditor = Depends(get_editor)):
    editor.close_refine()
    return _editor_state(editor)


@app.post("/api/image/open")
def open_image_dialog(slide_index: int = Form(...), editor: PresentationEditor = Depends(get_editor)):
    try:
        dialog = editor.open_image_dialog(slide_index)
    except IndexError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return dialog.to_dict()


@app.post("/api/image/generate")
async def generate_image(prompt: str = Form(...), editor: PresentationEditor = Depends(get_editor)):
    image_url = await editor.generate_image(prompt)
    return {"image_url": image_url, **_editor_state(editor)}


@app.delete("/api/image")
def close_image_dialog(editor: PresentationEditor = Depends(get_editor)):
    editor.close_image_dialog()
    return _editor_state(editor)


# ---------------- export & playback ----------------
@app.get("/api/export/{fmt}")
def export_presentation(fmt: str, editor: PresentationEditor = Depends(get_editor)):
    try:
        result = editor.export(fmt)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    headers = {"Content-Disposition": _content_disposition(result.filename)}
    return StreamingResponse(io.BytesIO(result.data), media_type=result.media_type, headers=headers)


@app.post("/api/playback")
def start_playback(from_selection: bool = Form(False), ws: Workspace = Depends(get_workspace)):
    return ws.start_playback(from_selection).to_dict()


@app.get("/api/playback")
def get_playback(ws: Workspace = Depends(get_workspace)):
    return ws.require_playback().to_dict()


@app.post("/api/playback/key")
def playback_key(key: str = Form(...), ws: Workspace = Depends(get_workspace)):
    playback = ws.require_playback()
    playback.handle_key(key)
    return playback.to_dict()


def serve():
    setup_logging(LOG_LEVEL, LOG_PATH)
    uvicorn.run(app, host=HOST, port=PORT)
