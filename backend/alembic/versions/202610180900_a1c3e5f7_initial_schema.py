from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "202610180900_a1c3e5f7"
down_revision = None
branch_labels = None
depends_on = None

def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('key', sa.String(), nullable=False),
    )
    op.create_index('ix_users_key', 'users', ['key'], unique=True)

    op.create_table(
        'uploads',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('file_path', sa.String(), nullable=False),
        sa.Column('uploader', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
    )
    op.create_index('ix_uploads_file_path', 'uploads', ['file_path'], unique=True)
    op.create_index('ix_uploads_uploader', 'uploads', ['uploader'])

def downgrade() -> None:
    op.drop_index('ix_uploads_uploader', table_name='uploads')
    op.drop_index('ix_uploads_file_path', table_name='uploads')
    op.drop_table('uploads')
    op.drop_index('ix_users_key', table_name='users')
    op.drop_table('users')
