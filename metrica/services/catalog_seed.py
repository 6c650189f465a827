"""
Shared catalog seed data: registry offices, service types and budget item
templates. Seeded rows have no owner and are visible to every user.

Usage:
    flask --app wsgi seed-catalog
"""

import logging

from metrica.models import db
from metrica.models.catalog import BudgetItemTemplate, Registry, Service
from metrica.services.checklists import MONTIVIDIU_CNS, RIO_VERDE_2_CNS, RIO_VERDE_CNS

logger = logging.getLogger(__name__)

REGISTRIES = [
    {"name": "Ofício de Registro de Imóveis de Montividiu", "cns": MONTIVIDIU_CNS,
     "municipality": "Montividiu", "uf": "GO"},
    {"name": "1º Ofício de Registro de Imóveis de Rio Verde", "cns": RIO_VERDE_CNS,
     "municipality": "Rio Verde", "uf": "GO"},
    {"name": "2º Ofício de Registro de Imóveis de Rio Verde", "cns": RIO_VERDE_2_CNS,
     "municipality": "Rio Verde", "uf": "GO"},
]

SERVICES = [
    {
        "name": "Georreferenciamento de Imóvel Rural (Pacote Completo)",
        "description": "Prestação de serviços técnicos especializados de Georreferenciamento "
                       "de Imóvel Rural, conforme normas do INCRA.",
        "items": [
            "Levantamento planialtimétrico georreferenciado com GNSS",
            "Implantação e identificação dos vértices do perímetro",
            "Elaboração de planta e memorial descritivo padrão INCRA",
            "Certificação do imóvel junto ao SIGEF/INCRA",
            "Suporte para averbação no Cartório de Registro de Imóveis",
        ],
        "base_price": 5000,
    },
    {
        "name": "CAR - Cadastro Ambiental Rural - SIGCAR GO",
        "description": "Elaboração e retificação do Cadastro Ambiental Rural no sistema "
                       "SIGCAR do Estado de Goiás.",
        "items": [
            "Análise de imagens de satélite e dados geoeconômicos",
            "Vetorização de APPs, Reserva Legal e Uso Consolidado",
            "Lançamento de dados no sistema SIGCAR/SEMAD",
            "Acompanhamento da análise técnica perante o órgão ambiental",
        ],
        "base_price": 1500,
    },
    {
        "name": "Retificação de Área (Administrativa)",
        "description": "Processo administrativo para retificação de medidas e confrontações "
                       "junto ao Registro de Imóveis.",
        "items": [
            "Levantamento técnico de precisão",
            "Elaboração de plantas e memoriais descritivos",
            "Coleta de assinaturas de anuência dos confrontantes",
            "Montagem de processo para o Cartório",
        ],
        "base_price": 3500,
    },
    {
        "name": "Desmembramento / Remembramento",
        "description": "Divisão ou unificação de matrículas de imóveis rurais.",
        "items": [
            "Projeto técnico de divisão/unificação",
            "Elaboração de memoriais das novas áreas",
            "Certificação das parcelas no SIGEF (se aplicável)",
            "Protocolo na Prefeitura e INCRA",
        ],
        "base_price": 4000,
    },
]

BUDGET_TEMPLATES = [
    {"description": "Levantamento com GNSS RTK/PPP", "default_price": 2500, "category": "Campo"},
    {"description": "Implantação de Marcos de Concreto (Unid)", "default_price": 150, "category": "Materiais"},
    {"description": "Elaboração de Planta e Memorial", "default_price": 1200, "category": "Escritório"},
    {"description": "Certificação SIGEF/INCRA", "default_price": 800, "category": "Taxas/Processos"},
    {"description": "Deslocamento Técnico (km)", "default_price": 2.5, "category": "Logística"},
    {"description": "Análise de Matrícula e Documentação", "default_price": 300, "category": "Escritório"},
]


def seed_catalog() -> int:
    """Insert missing shared catalog rows. Idempotent; returns the number added."""
    added = 0

    for row in REGISTRIES:
        if not Registry.query.filter_by(cns=row["cns"], user_id=None).first():
            db.session.add(Registry(**row))
            added += 1

    for row in SERVICES:
        if not Service.query.filter_by(name=row["name"], user_id=None).first():
            values = dict(row)
            service = Service(**{k: v for k, v in values.items() if k != "items"})
            service.items = values["items"]
            db.session.add(service)
            added += 1

    for row in BUDGET_TEMPLATES:
        if not BudgetItemTemplate.query.filter_by(description=row["description"], user_id=None).first():
            db.session.add(BudgetItemTemplate(**row))
            added += 1

    db.session.commit()
    logger.info("Catalog seed: %d rows added", added)
    return added
