# app/core/exceptions.py


class StorageError(RuntimeError):
    """
    Falha na camada de persistência.

    O coordenador não tenta de novo: faz rollback e propaga para quem chamou.
    """


class DeviceIdCollisionError(StorageError):
    """Não foi possível gerar um device_id livre dentro do número de tentativas."""


class InvalidDeviceIdError(ValueError):
    """device_id malformado (rejeitado antes de chegar ao coordenador)."""
