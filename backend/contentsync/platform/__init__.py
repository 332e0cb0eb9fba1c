"""Pipeline components and their collaborators."""
