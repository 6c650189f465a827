"""
Documentation checklists per registry jurisdiction.

The documentation step shows the list of documents the target registry
office (CRI) requires. The list is picked by:
    1. CAR service            → CHECKLIST_CAR_GO
    2. registry CNS code      → JURISDICTION_CHECKLISTS[cns] (exact match)
    3. no match               → [] (the step falls back to free-text notes)
"""

from metrica.services.workflow_templates import is_car_service

MONTIVIDIU_CNS = "02.456-1"
RIO_VERDE_CNS = "02.648-4"
RIO_VERDE_2_CNS = "02.612-0"

CHECKLIST_MONTIVIDIU = (
    {"id": "1", "label": "REQUERIMENTO solicitando a AVERBAÇÃO da CERTIFICAÇÃO."},
    {"id": "2", "label": "CERTIFICAÇÃO emitida pelo INCRA/SIGEF."},
    {"id": "3", "label": "ANUÊNCIA / DECLARAÇÃO de limites de todos os confrontantes."},
    {"id": "4", "label": "MAPA expedido pelo SIGEF."},
    {"id": "5", "label": "PROVA DE ART quitada."},
    {"id": "6", "label": "LAUDO TÉCNICO do engenheiro."},
    {"id": "7", "label": "CCIR atualizado."},
    {"id": "8", "label": "ITR – últimos 05 anos."},
    {"id": "9", "label": "Procuração (se aplicável)."},
    {"id": "10", "label": "CAR (Cadastro Ambiental Rural)."},
)

CHECKLIST_RIO_VERDE = (
    {"id": "1", "label": (
        "1. REQUERIMENTO DO INTERESSADO solicitando a AVERBAÇÃO da CERTIFICAÇÃO do "
        "GEORREFERENCIAMENTO, assinado pelo(a)(s) proprietário(a)(s), com a(s) "
        "firma(s) reconhecida(s)."
    )},
    {"id": "2", "label": "2. CERTIFICAÇÃO emitida pelo INCRA/SIGEF."},
    {"id": "3", "label": (
        "3. ANUÊNCIA / DECLARAÇÃO DE RESPEITO DE LIMITES de todos os confrontantes "
        "indicados no memorial descritivo e planta, com as respectivas firmas reconhecidas."
    )},
    {"id": "4", "label": "4. MAPA expedido pelo SIGEF."},
    {"id": "5", "label": (
        "5. PROVA DE ANOTAÇÃO DE RESPONSABILIDADE TÉCNICA (ART) no Conselho Regional "
        "de Engenharia, quitada, com as firmas reconhecidas."
    )},
    {"id": "6", "label": "6. LAUDO TÉCNICO do engenheiro responsável."},
    {"id": "7", "label": "7. CCIR do imóvel ou imóveis atualizado (último)."},
    {"id": "8", "label": "8. ITR – últimos 05 anos pagos ou Certidão expedida pela Receita Federal."},
    {"id": "9", "label": (
        "9. Procuração ou termo de inventariante, se for o caso, de todos os "
        "representantes que comparecem no processo ou nas cartas de anuência das confrontações."
    )},
    {"id": "10", "label": (
        "10. CAR (Cadastro Ambiental Rural), juntamente com o requerimento para "
        "averbação, caso ainda não esteja averbado na matrícula do imóvel."
    )},
)

CHECKLIST_RIO_VERDE_2 = (
    {"id": "1", "label": "Certificação a ser emitida pelo INCRA."},
    {"id": "2", "label": "Memorial descritivo assinado pelo técnico responsável, contendo o nº do CREA."},
    {"id": "3", "label": "Anuência de todos os confrontantes"},
    {"id": "4", "label": "Planta do imóvel rural georreferenciado."},
    {"id": "5", "label": (
        "Planta do imóvel feita pelo técnico responsável, mostrando os confrontantes "
        "e suas matrículas, devidamente assinado."
    )},
    {"id": "6", "label": (
        "Laudo Técnico assinado pelo técnico responsável, justificando todas as "
        "divergências existentes."
    )},
    {"id": "7", "label": "Certidão do IBAMA."},
    {"id": "8", "label": "CCIR e ITR atualizados."},
    {"id": "9", "label": "ART do CREA"},
)

CHECKLIST_CAR_GO = (
    {"id": "1", "label": "Documentos Pessoais"},
    {"id": "2", "label": "Comprovante de Endereço"},
    {"id": "3", "label": "Certidão de Matrícula ou Escritura"},
    {"id": "4", "label": "e-mail"},
)

JURISDICTION_CHECKLISTS = {
    MONTIVIDIU_CNS: CHECKLIST_MONTIVIDIU,
    RIO_VERDE_CNS: CHECKLIST_RIO_VERDE,
    RIO_VERDE_2_CNS: CHECKLIST_RIO_VERDE_2,
}


def checklist_for(service, registry) -> list[dict]:
    """Return the documentation checklist items for a project's service + registry."""
    if is_car_service(service):
        return [dict(item) for item in CHECKLIST_CAR_GO]
    cns = getattr(registry, "cns", None)
    return [dict(item) for item in JURISDICTION_CHECKLISTS.get(cns, ())]
