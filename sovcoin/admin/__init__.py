from sovcoin.admin.factory import FactoryAdmin

__all__ = ["FactoryAdmin"]
