"""Manpower Hub package.

``webauthn`` and ``attendance`` each carry a model, a repository Protocol with
its MySQL implementation, services and a thin Flask controller; ``users`` and
``employees`` are the read side they look principals up in. The biometric
ceremony in ``webauthn`` gates every attendance write, and ``client`` is the
orchestrating side of that ceremony.
"""
