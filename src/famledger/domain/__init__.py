"""Domain layer for famledger application.

Services are imported lazily so that the database layer can depend on
``famledger.domain.entities`` without pulling every service in.
"""

_SERVICES = {
    "AccountService": "famledger.domain.account",
    "BalanceReconciler": "famledger.domain.reconciler",
    "EventBus": "famledger.domain.events",
    "InstanceService": "famledger.domain.instance",
    "InvoiceService": "famledger.domain.invoice",
    "LedgerService": "famledger.domain.ledger",
    "ProjectionEngine": "famledger.domain.projection",
    "SummaryService": "famledger.domain.summary",
    "TemplateExpander": "famledger.domain.expander",
    "TemplateService": "famledger.domain.template",
    "TransferService": "famledger.domain.transfer",
}

__all__ = sorted(_SERVICES)


def __getattr__(name):
    if name in _SERVICES:
        from importlib import import_module

        return getattr(import_module(_SERVICES[name]), name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
