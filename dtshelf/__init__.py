"""Design-thinking bookshelf: curated catalog with AI and keyword search."""
