# taskpulse/utils/db/__init__.py

"""
Storage gateway and the stores built on top of it.
"""
import taskpulse.config.config_manager as cf
from taskpulse.utils.db.storage import JsonStorage


def get_storage() -> JsonStorage:
    """JSON key-value storage rooted at the configured data directory."""
    return JsonStorage(cf.get_data_dir())


def build_task_store(clock=None, auto_reconcile: bool = True):
    """
    TaskStore with preferences defaulted from config.
    - auto_reconcile: reconcile once on load and after every mutation
      (the on-change trigger for one-shot CLI commands).
    """
    from taskpulse.utils.db.task_repository import TaskStore

    store = TaskStore(get_storage(), clock=clock, default_preferences=cf.get_default_preferences())
    if auto_reconcile:
        store.reconcile()
        store.add_listener(store.reconcile)
    return store


def build_counter_store(clock=None):
    from taskpulse.utils.db.counter_repository import CounterStore
    return CounterStore(get_storage(), clock=clock)


def build_note_store(clock=None):
    from taskpulse.utils.db.note_repository import NoteStore
    return NoteStore(get_storage(), clock=clock)
