from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel, Field

from template_formula.calculation import calculate
from template_formula.config import load_settings
from template_formula.definitions import PropertyDefinition
from template_formula.engine import evaluate
from template_formula.errors import FormulaError
from template_formula.logging import configure_logging, log_event
from template_formula.preview import preview_for_definitions
from template_formula.properties import FormulaContext, Property, PropertyOption
from template_formula.templates import DeviceTemplate, generate_device_fields, list_templates
from template_formula.validation import validate_formula

settings = load_settings()
logger = configure_logging(settings.log_path)

app = FastAPI(title="Device Template Formulas")
app.state.settings = settings


# -----------------------------
# Request models
# -----------------------------

class OptionModel(BaseModel):
    code: str
    label_en: str = ""
    label_ar: str = ""


class PropertyModel(BaseModel):
    name: str
    value: Optional[Union[bool, int, float, str, List[str]]] = None
    options: List[OptionModel] = Field(default_factory=list)

    def to_property(self) -> Property:
        options = tuple(PropertyOption(code=o.code, label_en=o.label_en, label_ar=o.label_ar) for o in self.options)
        return Property(name=self.name, value=self.value, options=options)


class DefinitionModel(BaseModel):
    name: str
    label_en: str = ""
    label_ar: str = ""
    type: str = "text"
    unit: str = ""
    options: List[OptionModel] = Field(default_factory=list)
    formula: str = ""


class ValidateRequest(BaseModel):
    formula: str = ""
    properties: List[str] = Field(default_factory=list)


class EvaluateRequest(BaseModel):
    formula: str = ""
    properties: List[PropertyModel] = Field(default_factory=list)
    context: FormulaContext = FormulaContext.DESCRIPTION_EN


class PreviewRequest(BaseModel):
    formula: str = ""
    properties: List[DefinitionModel] = Field(default_factory=list)
    context: FormulaContext = FormulaContext.DESCRIPTION_EN
    values: Optional[Dict[str, Any]] = None


class CalculateRequest(BaseModel):
    formula: str = ""
    properties: List[PropertyModel] = Field(default_factory=list)


class TemplateRequest(BaseModel):
    template: Dict[str, Any]


class GenerateRequest(BaseModel):
    template: Dict[str, Any]
    values: Dict[str, Any] = Field(default_factory=dict)
    fixed_values: Dict[str, Any] = Field(default_factory=dict)


def _load_template(data: Dict[str, Any]) -> DeviceTemplate:
    try:
        return DeviceTemplate.from_mapping(data)
    except FormulaError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


# -----------------------------
# Formula endpoints
# -----------------------------

@app.get("/api/health")
async def health():
    return {"status": "ok"}


@app.post("/api/formulas/validate")
async def validate_endpoint(payload: ValidateRequest):
    return validate_formula(payload.formula, payload.properties).to_dict()


@app.post("/api/formulas/evaluate")
async def evaluate_endpoint(payload: EvaluateRequest):
    result = evaluate(payload.formula, [p.to_property() for p in payload.properties], payload.context)
    log_event(logger, "formula_evaluated", {"context": payload.context.value, "length": len(payload.formula)})
    return {"result": result}


@app.post("/api/formulas/preview")
async def preview_endpoint(payload: PreviewRequest, request: Request):
    definitions = [PropertyDefinition.from_mapping(d.model_dump()) for d in payload.properties]
    preview = preview_for_definitions(
        payload.formula,
        definitions,
        payload.context,
        values=payload.values,
        settings=request.app.state.settings,
    )
    return {"preview": preview}


@app.post("/api/formulas/calculate")
async def calculate_endpoint(payload: CalculateRequest):
    return {"value": calculate(payload.formula, [p.to_property() for p in payload.properties])}


# -----------------------------
# Template endpoints
# -----------------------------

@app.get("/api/templates")
async def templates_index(request: Request):
    found = list_templates(request.app.state.settings.templates_dir)
    return {"templates": sorted(found)}


@app.get("/api/templates/{name}")
async def template_detail(name: str, request: Request):
    found = list_templates(request.app.state.settings.templates_dir)
    if name not in found:
        raise HTTPException(status_code=404, detail="Template not found")
    try:
        template = DeviceTemplate.load(found[name])
    except FormulaError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"template": template.to_dict()}


@app.post("/api/templates/validate")
async def template_validate(payload: TemplateRequest):
    template = _load_template(payload.template)
    issues = template.validate()
    return {
        "is_valid": not any(issue.severity == "error" for issue in issues),
        "issues": [{"check_id": i.check_id, "message": i.message, "severity": i.severity} for i in issues],
    }


@app.post("/api/templates/generate")
async def template_generate(payload: GenerateRequest):
    template = _load_template(payload.template)
    fields = generate_device_fields(template, payload.values, payload.fixed_values)
    log_event(logger, "device_generated", {"template": template.name, "sku": fields.get("sku", "")})
    return {"fields": fields}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("template_formula.api:app", host="0.0.0.0", port=8000)
