import os
import csv
import io
import logging
import uuid
from datetime import date
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

import uvicorn
from fastapi import Depends, FastAPI, File, Form, HTTPException, UploadFile, status
from fastapi.responses import FileResponse, StreamingResponse
from pydantic import ValidationError
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker
from starlette.concurrency import run_in_threadpool

from menu_parser import parse_menu_text
from models import Base, Eatery, EateryMenu, MenuSourceType, MenuStatus
from reminders import pending_eateries
from schemas import (
    DailyMenuResponse, EateryCreate, EateryResponse, ExtractResponse, UploadFormResponse,
    extras_adapter, structured_menu_adapter
)
from text_extraction import TextExtractionError, extract_text
import docx_utils


logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./app.db")
UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads")
REPORTS_DIR = os.getenv("REPORTS_DIR", "reports")

MAX_UPLOAD_BYTES = 10 * 1024 * 1024
ALLOWED_EXTENSIONS = {".pdf", ".jpg", ".jpeg", ".png"}

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base.metadata.create_all(bind=engine)


def get_db() -> Session:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


app = FastAPI(title="Daily Menu API")


def today() -> date:
    return date.today()


def get_eatery_or_404(db: Session, eatery_id: int) -> Eatery:
    eatery = db.query(Eatery).filter(Eatery.id == eatery_id).first()
    if not eatery:
        raise HTTPException(status_code=404, detail="Eatery not found")
    return eatery


def find_menu(db: Session, eatery_id: int, menu_date: date) -> Optional[EateryMenu]:
    return db.query(EateryMenu).filter(
        EateryMenu.eatery_id == eatery_id, EateryMenu.menu_date == menu_date
    ).first()


def get_menu_or_404(db: Session, eatery_id: int, menu_date: date) -> EateryMenu:
    menu = find_menu(db, eatery_id, menu_date)
    if not menu:
        raise HTTPException(status_code=404, detail="Menu not found")
    return menu


def file_extension(filename: Optional[str]) -> str:
    return os.path.splitext(filename or "")[1].lower()


def validate_upload(field: str, filename: Optional[str], content: bytes, errors: dict) -> None:
    if not content:
        errors.setdefault(field, []).append("The file is empty.")
    elif len(content) > MAX_UPLOAD_BYTES:
        errors.setdefault(field, []).append("The file may not be greater than 10240 kilobytes.")
    if file_extension(filename) not in ALLOWED_EXTENSIONS:
        errors.setdefault(field, []).append("The file must be a file of type: pdf, jpg, jpeg, png.")


def validate_menu_context(db: Session, eatery_id: int, menu_date: date, errors: dict) -> None:
    if not db.query(Eatery).filter(Eatery.id == eatery_id).first():
        errors.setdefault("eatery_id", []).append("The selected eatery is invalid.")
    current = today()
    if menu_date != current:
        errors.setdefault("menu_date", []).append(f"The menu date must be today ({current}).")


def raise_for_errors(errors: dict) -> None:
    if errors:
        raise HTTPException(
            status_code=422,
            detail={"message": "Validation failed", "errors": errors},
        )


def count_items(structured_menu: dict) -> int:
    return sum(len(items) for items in structured_menu.values())


def extract_structured_menu(path: str, source_type: MenuSourceType):
    """Blocking part of the extract endpoint: read the text, then parse it."""
    extracted_text = extract_text(path, source_type.value)
    return extracted_text, parse_menu_text(extracted_text)


def duplicate_menu_error() -> HTTPException:
    return HTTPException(status_code=409, detail="A menu has already been uploaded for today.")


def discard_upload(db: Session, file_path: str) -> None:
    db.rollback()
    if os.path.exists(file_path):
        os.remove(file_path)


@app.post("/eateries", response_model=EateryResponse, status_code=status.HTTP_201_CREATED)
def create_eatery(eatery: EateryCreate, db: Session = Depends(get_db)):
    new_eatery = Eatery(**eatery.model_dump())
    db.add(new_eatery)
    db.commit()
    db.refresh(new_eatery)
    return new_eatery


@app.get("/eateries", response_model=List[EateryResponse])
def list_eateries(db: Session = Depends(get_db)):
    return db.query(Eatery).order_by(Eatery.id).all()


@app.get("/eateries/{eatery_id}", response_model=EateryResponse)
def get_eatery(eatery_id: int, db: Session = Depends(get_db)):
    return get_eatery_or_404(db, eatery_id)


@app.get("/eateries/{eatery_id}/daily-menu/{menu_date}", response_model=UploadFormResponse)
def show_upload_form(eatery_id: int, menu_date: date, db: Session = Depends(get_db)):
    eatery = get_eatery_or_404(db, eatery_id)

    current = today()
    if menu_date != current:
        raise HTTPException(
            status_code=400,
            detail=f"You can only upload the menu for today ({current})."
        )

    already_uploaded = find_menu(db, eatery_id, menu_date) is not None

    return UploadFormResponse(
        eatery=EateryResponse.model_validate(eatery),
        menu_date=menu_date,
        already_uploaded=already_uploaded
    )


@app.post("/daily-menu/extract", response_model=ExtractResponse)
async def extract_menu(
    file: UploadFile = File(...),
    eatery_id: int = Form(...),
    menu_date: date = Form(...),
    db: Session = Depends(get_db)
):
    content = await file.read()

    errors = {}
    validate_upload("file", file.filename, content, errors)
    await run_in_threadpool(validate_menu_context, db, eatery_id, menu_date, errors)
    raise_for_errors(errors)

    is_pdf = file.content_type == "application/pdf" or file_extension(file.filename) == ".pdf"
    source_type = MenuSourceType.PDF if is_pdf else MenuSourceType.IMAGE

    temp_dir = os.path.join(UPLOAD_DIR, "temp")
    os.makedirs(temp_dir, exist_ok=True)
    temp_path = os.path.join(temp_dir, f"{uuid.uuid4().hex}_{os.path.basename(file.filename)}")
    with open(temp_path, "wb") as temp_file:
        temp_file.write(content)

    try:
        extracted_text, structured_menu = await run_in_threadpool(
            extract_structured_menu, temp_path, source_type
        )
    except TextExtractionError as e:
        logger.error(
            "Menu extraction failed for eatery %s on %s: %s (file %s)",
            eatery_id, menu_date, e, temp_path
        )
        raise HTTPException(status_code=500, detail=f"Extraction failed: {e}")
    finally:
        if os.path.exists(temp_path):
            os.remove(temp_path)

    logger.info(
        "Extracted structured menu for eatery %s on %s: %d sections, %d items",
        eatery_id, menu_date, len(structured_menu), count_items(structured_menu)
    )

    return {"extracted_text": extracted_text, "structured_menu": structured_menu}


@app.post("/daily-menu/store", response_model=DailyMenuResponse, status_code=status.HTTP_201_CREATED)
async def store_menu(
    eatery_id: int = Form(...),
    menu_date: date = Form(...),
    source_type: MenuSourceType = Form(...),
    source_file: UploadFile = File(...),
    extracted_text: str = Form(...),
    structured_menu: str = Form(...),
    extras: Optional[str] = Form(None),
    db: Session = Depends(get_db)
):
    content = await source_file.read()

    errors = {}
    validate_upload("source_file", source_file.filename, content, errors)
    validate_menu_context(db, eatery_id, menu_date, errors)

    menu_data = {}
    try:
        parsed_menu = structured_menu_adapter.validate_json(structured_menu)
        menu_data = {
            section: [item.model_dump() for item in items]
            for section, items in parsed_menu.items()
        }
    except ValidationError as e:
        errors.setdefault("structured_menu", []).append(f"Invalid structured menu: {e.error_count()} errors")
    else:
        if count_items(menu_data) == 0:
            errors.setdefault("structured_menu", []).append("The structured menu contains no items.")

    extras_data = None
    if extras:
        try:
            parsed_extras = extras_adapter.validate_json(extras)
            extras_data = [extra.model_dump() for extra in parsed_extras if not extra.is_empty()] or None
        except ValidationError as e:
            errors.setdefault("extras", []).append(f"Invalid extras: {e.error_count()} errors")

    raise_for_errors(errors)

    if find_menu(db, eatery_id, menu_date):
        raise duplicate_menu_error()

    relative_path = f"menus/eatery_{eatery_id}_{menu_date}{file_extension(source_file.filename)}"
    menu = EateryMenu(
        eatery_id=eatery_id,
        menu_date=menu_date,
        source_type=source_type,
        source_file=relative_path,
        extracted_text=extracted_text,
        structured_menu=menu_data,
        extras=extras_data,
        status=MenuStatus.ACTIVE
    )
    db.add(menu)

    # Claim the (eatery, day) slot before touching the stored upload.
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise duplicate_menu_error()

    menus_dir = os.path.join(UPLOAD_DIR, "menus")
    os.makedirs(menus_dir, exist_ok=True)
    file_path = os.path.join(UPLOAD_DIR, relative_path)
    try:
        with open(file_path, "wb+") as file_object:
            file_object.write(content)
        db.commit()
    except IntegrityError:
        discard_upload(db, file_path)
        raise duplicate_menu_error()
    except OSError:
        discard_upload(db, file_path)
        raise

    db.refresh(menu)
    logger.info("Stored daily menu %s for eatery %s on %s", menu.id, eatery_id, menu_date)
    return menu


@app.get("/eateries/{eatery_id}/menus", response_model=List[DailyMenuResponse])
def list_menus(eatery_id: int, db: Session = Depends(get_db)):
    get_eatery_or_404(db, eatery_id)
    return db.query(EateryMenu).filter(EateryMenu.eatery_id == eatery_id) \
        .order_by(EateryMenu.menu_date.desc()).all()


@app.get("/eateries/{eatery_id}/menus/{menu_date}", response_model=DailyMenuResponse)
def get_menu(eatery_id: int, menu_date: date, db: Session = Depends(get_db)):
    return get_menu_or_404(db, eatery_id, menu_date)


@app.get("/eateries/{eatery_id}/menus/{menu_date}/export")
def export_menu(eatery_id: int, menu_date: date, db: Session = Depends(get_db)):
    menu = get_menu_or_404(db, eatery_id, menu_date)

    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(['Section', 'Item', 'Price'])

    for section, items in (menu.structured_menu or {}).items():
        for item in items:
            writer.writerow([section, item['name'], item['price']])

    for extra in menu.extras or []:
        writer.writerow(['Extras', extra.get('name') or '', extra.get('price') or ''])

    output.seek(0)
    filename = f"menu_{eatery_id}_{menu_date}.csv"
    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )


@app.get("/eateries/{eatery_id}/menus/{menu_date}/docx")
def download_menu_document(eatery_id: int, menu_date: date, db: Session = Depends(get_db)):
    menu = get_menu_or_404(db, eatery_id, menu_date)

    filename = f"Menu_{eatery_id}_{menu_date}.docx"
    path = docx_utils.generate_daily_menu_document(
        menu.eatery.name,
        menu_date,
        menu.structured_menu or {},
        extras=menu.extras,
        filename=filename,
        reports_dir=REPORTS_DIR
    )

    return FileResponse(path, filename=filename)


@app.get("/daily-menu/pending", response_model=List[EateryResponse])
def list_pending_eateries(db: Session = Depends(get_db)):
    return pending_eateries(db, today())


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
