"""Seed script to create initial data for development/demo."""

import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from anamnesis.database import SessionLocal, init_db
from anamnesis.models.template import Template, FieldType, SystemField, TemplateCategory
from anamnesis.schemas.anamnesis import AnamnesisCreate
from anamnesis.schemas.template import FieldCreate, SectionCreate, TemplateCreate
from anamnesis.services.anamnesis import AnamnesisService
from anamnesis.services.template import TemplateService

# Template configurations
TEMPLATES = [
    {
        "nome": "Skin Intake",
        "descricao": "Facial aesthetics intake: identification, skin history and signature.",
        "tipo": TemplateCategory.ESTETICA_FACIAL,
        "secoes": [
            {
                "titulo": "Personal data",
                "obrigatorio": True,
                "campos": [
                    {"tipo_campo": FieldType.TEXT, "label": "Full name", "obrigatorio": True,
                     "campo_sistema": SystemField.NOME_COMPLETO},
                    {"tipo_campo": FieldType.CPF, "label": "CPF", "largura": "half",
                     "campo_sistema": SystemField.CPF},
                    {"tipo_campo": FieldType.DATE, "label": "Date of birth", "largura": "half",
                     "campo_sistema": SystemField.DATA_NASCIMENTO},
                    {"tipo_campo": FieldType.PHONE, "label": "Phone", "largura": "half",
                     "campo_sistema": SystemField.TELEFONE},
                    {"tipo_campo": FieldType.EMAIL, "label": "Email", "largura": "half",
                     "campo_sistema": SystemField.EMAIL},
                ],
            },
            {
                "titulo": "Skin history",
                "campos": [
                    {"tipo_campo": FieldType.RADIO, "label": "Skin type", "obrigatorio": True,
                     "opcoes": ["Dry", "Oily", "Combination", "Normal"]},
                    {"tipo_campo": FieldType.CHECKBOX, "label": "Previous treatments",
                     "opcoes": ["Peeling", "Laser", "Botox", "Fillers"]},
                    {"tipo_campo": FieldType.TEXTAREA, "label": "Allergies",
                     "ajuda": "Medication, cosmetics or food"},
                ],
            },
            {
                "titulo": "Signature",
                "obrigatorio": True,
                "campos": [
                    {"tipo_campo": FieldType.SIGNATURE, "label": "Signature", "obrigatorio": True},
                ],
            },
        ],
    },
    {
        "nome": "General Health Questionnaire",
        "descricao": "Short general-purpose intake.",
        "tipo": TemplateCategory.GERAL,
        "secoes": [
            {
                "titulo": "About you",
                "campos": [
                    {"tipo_campo": FieldType.TEXT, "label": "Full name", "obrigatorio": True,
                     "campo_sistema": SystemField.NOME_COMPLETO},
                    {"tipo_campo": FieldType.NUMBER, "label": "Weight (kg)", "largura": "third"},
                    {"tipo_campo": FieldType.SELECT, "label": "Smoker",
                     "opcoes": ["No", "Yes", "Former smoker"]},
                ],
            },
        ],
    },
]


def create_template(db, config):
    """Create one template with its sections and fields through the services."""
    template = TemplateService.create_template(db, TemplateCreate(
        nome=config["nome"],
        descricao=config["descricao"],
        tipo=config["tipo"],
    ))
    for secao_config in config["secoes"]:
        secao = TemplateService.create_section(db, template.id, SectionCreate(
            titulo=secao_config["titulo"],
            obrigatorio=secao_config.get("obrigatorio", False),
        ))
        for campo_config in secao_config["campos"]:
            TemplateService.create_field(db, secao.id, FieldCreate(**campo_config))
    return template


def seed_database():
    """Create initial seed data."""
    db = SessionLocal()

    try:
        print("Creating templates...")

        created = []
        for config in TEMPLATES:
            template = db.query(Template).filter(Template.nome == config["nome"]).first()
            if template:
                print(f"  Template already exists: {config['nome']}")
                continue
            template = create_template(db, config)
            created.append(template)
            print(f"  Created template: {template.nome} (v{template.versao})")

        if created:
            print("\nDispatching a demo anamnesis...")
            anamnesis = AnamnesisService.create_anamnesis(db, AnamnesisCreate(
                template_id=created[0].id,
                paciente={"nome_completo": "Demo Patient"},
            ))
            print(f"  Public link token: {anamnesis.link_token}")
            print(f"  Expires at:        {anamnesis.link_expira_em.isoformat()}")

        print("\nSeed data created successfully!")

    except Exception as e:
        print(f"Error: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    # Create tables
    print("Creating database tables...")
    init_db()

    # Seed data
    seed_database()
