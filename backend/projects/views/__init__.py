# backend/projects/views/__init__.py
"""
Safe package init for projects.views.

Avoid importing submodules here; import them explicitly where needed:
    from projects.views.agreements import AgreementViewSet
    from projects.views.public_sign import AgreementSignView, SignedFileView
"""
__all__ = []
