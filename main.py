import asyncio

from src.core.locator import sl
from src.core.events import EventBus, Channels
from src.core.logging import setup_logging
from src.querysync import DataSyncService, QueryCache, SyncOptions


def on_data_change(event):
    if event.action.value == "created" and event.entity == "task":
        print(f"[Toast] New task created: {event.id}")


async def async_main():
    print("--- 1. Initialize Core ---")
    sl.init("settings.json")
    setup_logging(debug_mode=sl.config.data.general.debug_mode, log_dir=None)

    bus = sl.register_system(EventBus)
    cache = sl.register_system(QueryCache, QueryCache())
    sync = sl.register_system(DataSyncService)
    await sl.start_all()

    print("--- 2. Warm the cache ---")
    cache.set_query_data(("tasks", {"projectId": "p1"}), [{"id": "t1", "title": "Draft"}])
    cache.set_query_data(("task", "t1"), {"id": "t1", "title": "Draft"})

    print("--- 3. Global sync with a toast callback ---")
    sync.start_global_sync(SyncOptions(on_data_change=on_data_change))
    handle = sync.start_entity_sync("task", lambda e: print(f"[TaskPanel] {e.action.value} {e.id}"))

    bus.publish_sync(Channels.DATA_CHANGED, {"entity": "task", "action": "updated", "id": "t1", "data": {"id": "t1", "title": "Final"}})
    bus.publish_sync(Channels.DATA_CHANGED, {"entity": "task", "action": "created", "id": "t2", "data": {"id": "t2", "title": "New"}})
    bus.publish_sync(Channels.DATA_CHANGED, '{"entity": "chat", "action": "deleted", "id": "c9"}')

    print(f"task/t1 -> {cache.get_query_data(('task', 't1'))}")
    print(f"tasks list stale -> {cache.is_stale(('tasks', {'projectId': 'p1'}))}")
    print(f"events processed -> {sync.global_session.event_count}")

    print("--- 4. Disable / re-enable ---")
    sync.set_global_sync_enabled(False)
    bus.publish_sync(Channels.DATA_CHANGED, {"entity": "project", "action": "updated", "id": "p1", "data": {}})
    sync.set_global_sync_enabled(True)
    print(f"events after re-enable -> {sync.global_session.event_count}")

    sync.stop_entity_sync(handle)
    await sl.stop_all()


if __name__ == "__main__":
    asyncio.run(async_main())
