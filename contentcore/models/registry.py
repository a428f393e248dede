# contentcore/models/registry.py
# Importa todos los modelos para poblar Base.metadata (Alembic / create_all)
from contentcore.models.pages import Page, PageRevision  # noqa: F401
from contentcore.models.blog import Category, Post, PostRevision, Series, post_categories  # noqa: F401
