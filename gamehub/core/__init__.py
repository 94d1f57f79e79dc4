"""
Domain logic for GameHub: chats, relationships, statistics and accounts.
Nothing here knows about HTTP; the ORM models come from gamehub.api.models.
Every operation takes the SQLAlchemy session and the acting user's id explicitly.
"""
