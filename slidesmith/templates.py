# slidesmith/templates.py
from typing import List, Optional

from .schemas import Template, TemplateStyles

TEMPLATES: List[Template] = [
    Template(
        id="professional-blue",
        name="Professional Blue",
        styles=TemplateStyles(
            background="#1E293B", title="#60A5FA", subtitle="#CBD5E1", text="#CBD5E1", accent="#60A5FA"
        ),
    ),
    Template(
        id="cyberpunk-neon",
        name="Cyberpunk Neon",
        styles=TemplateStyles(
            background="#000000", title="#E879F9", subtitle="#22D3EE", text="#E5E7EB", accent="#E879F9"
        ),
    ),
    Template(
        id="light-minimal",
        name="Minimal Light",
        styles=TemplateStyles(
            background="#F3F4F6", title="#1F2937", subtitle="#374151", text="#4B5563", accent="#1F2937"
        ),
    ),
    Template(
        id="forest-green",
        name="Forest Green",
        styles=TemplateStyles(
            background="#14532D", title="#FEF08A", subtitle="#DCFCE7", text="#F0FDF4", accent="#FEF08A"
        ),
    ),
]


def get_template(template_id: str) -> Optional[Template]:
    for t in TEMPLATES:
        if t.id == template_id:
            return t
    return None
