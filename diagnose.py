
import sys
import os
import asyncio
from datetime import date

# Add project root to path
sys.path.append(os.getcwd())

try:
    from src.core.use_cases.mining_calculator import term_for_date, daily_allocation
    from src.core.use_cases.log_aggregator import LogAggregator
    from src.core.abi import DEPOSITED_EVENT_ABI
    from src.infrastructure.gateways.local_mock import LocalMockChainSource
    from src.api.main import app
    print("✅ All imports successful.")
except Exception as e:
    print(f"❌ Import failed: {e}")
    sys.exit(1)

# Term schedule sanity check
def check_terms():
    start = date(2024, 8, 7)
    got = [term_for_date(d, start, 16) for d in (date(2024, 8, 6), date(2024, 8, 22), date(2024, 8, 23), date(2024, 9, 24))]
    if got == [0, 1, 2, 3] and str(daily_allocation(1, 143_000_000, 16)) == "8937500.000":
        print("✅ Mining term schedule check passed.")
    else:
        print(f"❌ Mining term schedule check failed, got terms {got}")

# Aggregation against the in-memory chain
async def check_aggregation():
    try:
        chain = LocalMockChainSource()
        aggregator = LogAggregator(chain, page_delay=0)
        result = await aggregator.aggregate_to_head("0x" + "00" * 20, from_block=chain.head_block - 500_000)

        if len(result.unique_addresses) == 2 and result.today_amount <= result.total_amount:
            print(f"✅ Aggregation check passed ({result.page_count} pages).")
        else:
            print(f"❌ Aggregation check failed: {result}")
    except Exception as e:
        print(f"❌ Aggregation raised exception: {e}")

if __name__ == "__main__":
    check_terms()
    asyncio.run(check_aggregation())
