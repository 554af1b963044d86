"""Template pack endpoints."""

from fastapi import APIRouter, HTTPException

from veriflow.packs import TemplatePackLoader

router = APIRouter(prefix="/templates", tags=["Templates"])

# Shared loader instance (set by main.py)
loader: TemplatePackLoader = None


def set_loader(l: TemplatePackLoader):
    global loader
    loader = l


@router.get("")
async def list_templates():
    """List loaded template packs."""
    summaries = []
    for template_id in loader.list_templates():
        t = loader.get_template(template_id)
        summaries.append({
            "id": t.id,
            "name": t.name,
            "policy_type": t.policy_type.value,
            "version": t.version,
            "category_count": len(t.categories),
        })
    return summaries


@router.get("/{template_id}")
async def get_template(template_id: str):
    template = loader.get_template(template_id)
    if template is None:
        raise HTTPException(status_code=404, detail=f"Template '{template_id}' not found")
    return template.to_dict()
