from docx import Document
from docx.shared import Cm, Pt
import os


def generate_daily_menu_document(eatery_name, menu_date, structured_menu, extras=None,
                                 filename="daily_menu.docx", reports_dir="reports"):
    document = Document()

    sections = document.sections
    for section in sections:
        section.top_margin = Cm(1.5)
        section.bottom_margin = Cm(1.5)
        section.left_margin = Cm(2)
        section.right_margin = Cm(2)

    style = document.styles['Normal']
    font = style.font
    font.name = 'Times New Roman'
    font.size = Pt(11)

    document.add_heading(eatery_name, level=0)
    document.add_paragraph(f"Menu of the day: {menu_date}")

    for section_name, items in structured_menu.items():
        if not items:
            continue
        document.add_heading(section_name, level=1)
        for item in items:
            line_text = f"{item['name']}\t{item['price']}" if item.get('price') else item['name']
            p = document.add_paragraph(line_text)
            p.paragraph_format.space_after = Pt(0)

    if extras:
        document.add_heading("Extras", level=1)
        for extra in extras:
            line_text = "\t".join(part for part in (extra.get('name'), extra.get('price')) if part)
            p = document.add_paragraph(line_text)
            p.paragraph_format.space_after = Pt(0)

    os.makedirs(reports_dir, exist_ok=True)
    file_path = os.path.join(reports_dir, filename)
    document.save(file_path)
    return file_path
