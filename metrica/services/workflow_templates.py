"""
Workflow template catalog.

Two fixed, ordered step lists:
    - STANDARD_TEMPLATE: 12 steps, full geo-referencing / INCRA flow
    - CAR_TEMPLATE:       6 steps, environmental registration (CAR) flow

The template for a project is chosen from its service name: any name that
contains "CAR" (case-insensitive) selects the CAR flow.
"""

from dataclasses import dataclass

from metrica.models.workflow import (
    ART_CREA,
    BUDGET,
    CARTORY_REQ,
    CONFRONTANTS,
    CONTRACT,
    CRI_REGISTRATION,
    DOCUMENTATION,
    GEO_REPORT,
    IN_PROGRESS,
    NOT_STARTED,
    POINT_CONTROL,
    RECEIPT,
    SERVICE_ORDER,
    SIGEF,
)

CAR_SERVICE_TOKEN = "CAR"


@dataclass(frozen=True)
class StepTemplate:
    step_kind: str
    label: str
    has_document: bool


STANDARD_TEMPLATE = (
    StepTemplate(BUDGET, "Orçamento", True),
    StepTemplate(CONTRACT, "Contrato de Trabalho", True),
    StepTemplate(SERVICE_ORDER, "Ordem de Serviço", True),
    StepTemplate(ART_CREA, "ART para o CREA-GO", False),
    StepTemplate(DOCUMENTATION, "Documentação (Checklist)", False),
    StepTemplate(SIGEF, "Certificação no SIGEF", False),
    StepTemplate(CONFRONTANTS, "Anuência dos Confrontantes", False),
    StepTemplate(GEO_REPORT, "Laudo de Georreferenciamento", True),
    StepTemplate(CARTORY_REQ, "Requerimento para o Cartório", True),
    StepTemplate(CRI_REGISTRATION, "Registro no CRI", False),
    StepTemplate(POINT_CONTROL, "Controle de Pontos", False),
    StepTemplate(RECEIPT, "RECIBO", True),
)

CAR_TEMPLATE = (
    StepTemplate(BUDGET, "Orçamento", True),
    StepTemplate(CONTRACT, "Contrato de Trabalho", True),
    StepTemplate(SERVICE_ORDER, "Ordem de Serviço", True),
    StepTemplate(DOCUMENTATION, "Documentação (Checklist)", False),
    StepTemplate(SIGEF, "Cadastro no SICAR/SIGCAR", False),
    StepTemplate(RECEIPT, "RECIBO", True),
)


def is_car_service(service) -> bool:
    """True when the service denotes the CAR / environmental registration type."""
    name = getattr(service, "name", None) or ""
    return CAR_SERVICE_TOKEN in name.upper()


def select_template(service) -> tuple[StepTemplate, ...]:
    """Return the step template matching the project's service."""
    return CAR_TEMPLATE if is_car_service(service) else STANDARD_TEMPLATE


def build_step_rows(template, user_id: str) -> list[dict]:
    """
    Expand a template into step row dicts ready for insertion.
    The first step starts in progress, the rest are not started.
    """
    return [
        {
            "position": i,
            "step_kind": t.step_kind,
            "label": t.label,
            "has_document": t.has_document,
            "status": IN_PROGRESS if i == 0 else NOT_STARTED,
            "user_id": user_id,
        }
        for i, t in enumerate(template)
    ]
