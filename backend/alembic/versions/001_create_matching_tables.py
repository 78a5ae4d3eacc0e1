"""Create catalog, match record, confusion, weight and junk report tables

Revision ID: 001_matching_tables
Revises:
Create Date: 2026-09-28

Catalog tables are read-only for the matcher; match_record, confusion_pair,
weight_override and junk_report are written by the review and
calibration loops. confusion_pair and weight_override are append-only.
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001_matching_tables'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Trigram similarity for fuzzy name retrieval
    op.execute("CREATE EXTENSION IF NOT EXISTS pg_trgm")

    # Create catalog_card table
    op.create_table(
        'catalog_card',
        sa.Column('catalog_id', sa.Text(), primary_key=True),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('number', sa.Text(), nullable=False),
        sa.Column('number_normalized', sa.Text(), nullable=False),
        sa.Column('printed_total', sa.Integer(), nullable=True),
        sa.Column('collection_id', sa.Text(), nullable=False),
        sa.Column('collection_name', sa.Text(), nullable=False),
        sa.Column('collection_code', sa.Text(), nullable=False),
        sa.Column('updated_at', postgresql.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text("NOW()"))
    )
    op.create_index('ix_catalog_card_number_total', 'catalog_card', ['number_normalized', 'printed_total'])
    op.create_index('ix_catalog_card_name', 'catalog_card', ['name'])
    op.execute("CREATE INDEX ix_catalog_card_name_trgm ON catalog_card USING gin (name gin_trgm_ops)")

    # Create catalog_variant table
    op.create_table(
        'catalog_variant',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('catalog_id', sa.Text(), sa.ForeignKey('catalog_card.catalog_id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('prices', postgresql.JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column('graded_prices', postgresql.JSONB(), nullable=True),
        sa.Column('trends', postgresql.JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column('updated_at', postgresql.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text("NOW()"))
    )
    op.create_index('ix_catalog_variant_card', 'catalog_variant', ['catalog_id'])

    # Create match_record table
    op.create_table(
        'match_record',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('listing_id', sa.Text(), nullable=False),
        sa.Column('listing_title', sa.Text(), nullable=False),
        sa.Column('catalog_id', sa.Text(), nullable=False),
        sa.Column('variant_id', sa.Text(), nullable=False),
        sa.Column('item_number_key', sa.Text(), nullable=True),
        sa.Column('condition', sa.Text(), nullable=True),
        sa.Column('composite', sa.Float(), nullable=False),
        sa.Column('junk_penalty', sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column('signals', postgresql.JSONB(), nullable=False),
        sa.Column('retrieval_strategy', sa.Text(), nullable=False),
        sa.Column('variant_resolution_method', sa.Text(), nullable=False),
        sa.Column('weights_version', sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column('is_correct_match', sa.Boolean(), nullable=True),
        sa.Column('incorrect_reason', sa.Text(), nullable=True),
        sa.Column('correct_catalog_id', sa.Text(), nullable=True),
        sa.Column('reviewed_at', postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('created_at', postgresql.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.CheckConstraint(
            "incorrect_reason IS NULL OR incorrect_reason IN "
            "('wrong_item', 'wrong_set', 'wrong_variant', 'wrong_condition', 'wrong_price')",
            name='ck_match_record_incorrect_reason'
        )
    )
    op.create_index('ix_match_record_listing', 'match_record', ['listing_id'])
    op.create_index('ix_match_record_reviewed_at', 'match_record', ['reviewed_at'])

    # Create confusion_pair table (append-only)
    op.create_table(
        'confusion_pair',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('item_number_key', sa.Text(), nullable=False),
        sa.Column('wrong_catalog_id', sa.Text(), nullable=False),
        sa.Column('correct_catalog_id', sa.Text(), nullable=True),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('match_id', sa.Integer(), nullable=True),
        sa.Column('listing_title', sa.Text(), nullable=True),
        sa.Column('signals', postgresql.JSONB(), nullable=True),
        sa.Column('created_at', postgresql.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text("NOW()"))
    )
    op.create_index(
        'ix_confusion_pair_number_wrong',
        'confusion_pair',
        ['item_number_key', 'wrong_catalog_id', 'created_at']
    )

    # Create weight_override table (append-only, id is the weight version)
    op.create_table(
        'weight_override',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('weights', postgresql.JSONB(), nullable=False),
        sa.Column('baseline_weights', postgresql.JSONB(), nullable=True),
        sa.Column('sample_size', sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column('accuracy_before', sa.Float(), nullable=True),
        sa.Column('accuracy_after', sa.Float(), nullable=True),
        sa.Column('metadata', postgresql.JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column('calibrated_at', postgresql.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text("NOW()"))
    )

    # Create junk_report table
    op.create_table(
        'junk_report',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('listing_id', sa.Text(), nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('seller_name', sa.Text(), nullable=True),
        sa.Column('learned_tokens', postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column('created_at', postgresql.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text("NOW()"))
    )
    op.create_index('ix_junk_report_listing', 'junk_report', ['listing_id'], unique=True)
    op.create_index('ix_junk_report_seller', 'junk_report', ['seller_name'])


def downgrade() -> None:
    op.drop_index('ix_junk_report_seller', table_name='junk_report')
    op.drop_index('ix_junk_report_listing', table_name='junk_report')
    op.drop_table('junk_report')

    op.drop_table('weight_override')

    op.drop_index('ix_confusion_pair_number_wrong', table_name='confusion_pair')
    op.drop_table('confusion_pair')

    op.drop_index('ix_match_record_reviewed_at', table_name='match_record')
    op.drop_index('ix_match_record_listing', table_name='match_record')
    op.drop_table('match_record')

    op.drop_index('ix_catalog_variant_card', table_name='catalog_variant')
    op.drop_table('catalog_variant')

    op.execute("DROP INDEX IF EXISTS ix_catalog_card_name_trgm")
    op.drop_index('ix_catalog_card_name', table_name='catalog_card')
    op.drop_index('ix_catalog_card_number_total', table_name='catalog_card')
    op.drop_table('catalog_card')
