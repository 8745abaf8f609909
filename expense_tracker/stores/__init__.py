# expense_tracker/stores/__init__.py
from importlib import import_module

from expense_tracker.stores.base import LedgerStore, TemplateStore


def _load_class(path):
    module_name, cls_name = path.rsplit('.', 1)
    mod = import_module(module_name)
    return getattr(mod, cls_name)


def get_stores(config):
    """Return (template_store, ledger_store) for the configured backend."""
    name = config['store']
    template_path, ledger_path = config['store_modules'][name]
    if name == 'memory':
        template_store = _load_class(template_path)()
        ledger_store = _load_class(ledger_path)()
    else:
        template_store = _load_class(template_path)(config['db_path'])
        ledger_store = _load_class(ledger_path)(config['db_path'])
    return template_store, ledger_store


__all__ = ['LedgerStore', 'TemplateStore', 'get_stores']
