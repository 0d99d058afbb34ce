from state.sidebar_sync import SidebarState, SidebarSyncStore
from state.storage import MemoryStorage, SqliteSettingsStorage, StorageUnavailable
from state.filters import TradeFilters, load_trade_filters, save_trade_filters
