"""Initial database schema

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Templates table
    op.create_table(
        'anamnese_templates',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('nome', sa.String(255), nullable=False),
        sa.Column('descricao', sa.Text(), nullable=True),
        sa.Column('tipo', sa.String(50), nullable=True, default='geral'),
        sa.Column('versao', sa.Integer(), nullable=False, default=1),
        sa.Column('ativo', sa.Boolean(), nullable=True, default=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_anamnese_templates_id', 'anamnese_templates', ['id'])

    # Sections table
    op.create_table(
        'anamnese_secoes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('template_id', sa.Integer(), nullable=False),
        sa.Column('titulo', sa.String(255), nullable=False),
        sa.Column('descricao', sa.Text(), nullable=True),
        sa.Column('ordem', sa.Integer(), nullable=False, default=0),
        sa.Column('obrigatorio', sa.Boolean(), nullable=True, default=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['template_id'], ['anamnese_templates.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_anamnese_secoes_id', 'anamnese_secoes', ['id'])
    op.create_index('ix_anamnese_secoes_template_id', 'anamnese_secoes', ['template_id'])

    # Fields table
    op.create_table(
        'anamnese_campos',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('secao_id', sa.Integer(), nullable=False),
        sa.Column('tipo_campo', sa.String(30), nullable=False),
        sa.Column('label', sa.String(255), nullable=False),
        sa.Column('placeholder', sa.String(255), nullable=True),
        sa.Column('ajuda', sa.Text(), nullable=True),
        sa.Column('obrigatorio', sa.Boolean(), nullable=True, default=False),
        sa.Column('largura', sa.String(10), nullable=True, default='full'),
        sa.Column('ordem', sa.Integer(), nullable=False, default=0),
        sa.Column('opcoes', sa.JSON(), nullable=True),
        sa.Column('campo_sistema', sa.String(50), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['secao_id'], ['anamnese_secoes.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_anamnese_campos_id', 'anamnese_campos', ['id'])
    op.create_index('ix_anamnese_campos_secao_id', 'anamnese_campos', ['secao_id'])

    # Anamneses table
    op.create_table(
        'anamneses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('template_id', sa.Integer(), nullable=False),
        sa.Column('template_versao', sa.Integer(), nullable=False),
        sa.Column('template_snapshot', sa.JSON(), nullable=False),
        sa.Column('link_token', sa.String(64), nullable=False),
        sa.Column('link_expira_em', sa.DateTime(), nullable=False),
        sa.Column('status', sa.Enum('IN_PROGRESS', 'COMPLETED', 'EXPIRED', name='anamnesisstatus'), nullable=False),
        sa.Column('progresso_percentual', sa.Integer(), nullable=True, default=0),
        sa.Column('consentimento_lgpd', sa.Boolean(), nullable=True, default=False),
        sa.Column('consentimento_fotos', sa.Boolean(), nullable=True, default=False),
        sa.Column('consentimento_tratamento', sa.Boolean(), nullable=True, default=False),
        sa.Column('paciente', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.Column('data_preenchimento', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['template_id'], ['anamnese_templates.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_anamneses_id', 'anamneses', ['id'])
    op.create_index('ix_anamneses_template_id', 'anamneses', ['template_id'])
    op.create_index('ix_anamneses_link_token', 'anamneses', ['link_token'], unique=True)
    op.create_index('ix_anamneses_status', 'anamneses', ['status'])

    # Answers table
    op.create_table(
        'anamnese_respostas',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('anamnesis_id', sa.Integer(), nullable=False),
        sa.Column('campo_id', sa.Integer(), nullable=False),
        sa.Column('resposta', sa.Text(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['anamnesis_id'], ['anamneses.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('anamnesis_id', 'campo_id', name='uq_resposta_anamnesis_campo')
    )
    op.create_index('ix_anamnese_respostas_id', 'anamnese_respostas', ['id'])
    op.create_index('ix_anamnese_respostas_anamnesis_id', 'anamnese_respostas', ['anamnesis_id'])


def downgrade() -> None:
    op.drop_table('anamnese_respostas')
    op.drop_table('anamneses')
    op.drop_table('anamnese_campos')
    op.drop_table('anamnese_secoes')
    op.drop_table('anamnese_templates')

    # Drop enums (PostgreSQL specific)
    op.execute('DROP TYPE IF EXISTS anamnesisstatus')
