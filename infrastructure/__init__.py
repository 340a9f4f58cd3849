"""
Infrastructure adapters: payment gateway, e-mail, document storage and the
domain event bus, wired together by ``infrastructure.container``.
"""
