"""
Basic usage example for the support/resistance level engine.

This example demonstrates the fundamental workflow:
1. Data preparation
2. Scanning the Daily, H4 and H1 tiers
3. Strength and proximity queries
4. Configuration and error handling
"""

import pandas as pd
import numpy as np
from datetime import datetime

from sr_levels import (
    SupportResistanceEngine,
    DataFrameProvider,
    Tier,
    build_config
)


def generate_sample_data(periods: int, freq: str, seed: int) -> pd.DataFrame:
    """Generate a mean-reverting EURUSD-like OHLC series"""
    dates = pd.date_range(end='2024-06-03', periods=periods, freq=freq)

    rng = np.random.default_rng(seed)
    close = np.empty(periods)
    close[0] = 1.0850
    for i in range(1, periods):
        # pull back towards 1.0850 so the range keeps revisiting the same prices
        close[i] = close[i - 1] + 0.05 * (1.0850 - close[i - 1]) + rng.normal(0, 0.0015)

    spread = np.abs(rng.normal(0, 0.0010, periods))
    df = pd.DataFrame({
        'timestamp': dates,
        'open': np.roll(close, 1),
        'high': close + spread,
        'low': close - spread,
        'close': close
    })
    print(f"✅ Generated {len(df)} {freq} bars from {df['timestamp'].min()} to {df['timestamp'].max()}")

    return df


def build_provider() -> DataFrameProvider:
    print("📊 Generating sample OHLC data...")
    return DataFrameProvider({
        ("EURUSD", Tier.DAILY): generate_sample_data(250, 'D', seed=1),
        ("EURUSD", Tier.H4): generate_sample_data(400, '4h', seed=2),
        ("EURUSD", Tier.H1): generate_sample_data(500, 'h', seed=3),
    })


def basic_scan_example():
    """Scan one symbol and query its levels"""
    print("\n📐 Basic Support/Resistance Example")
    print("=" * 50)

    provider = build_provider()
    engine = SupportResistanceEngine(
        provider,
        config=build_config(retention_seconds=365 * 86400),
        clock=lambda: datetime(2024, 6, 3)
    )

    # 1. Scan every tier
    print("\n🔍 Scanning EURUSD...")
    report = engine.scan_symbol("EURUSD")

    print(f"✅ Scan completed in {report.duration_ms:.1f} ms")
    print(f"Tiers scanned: {report.tiers_scanned}, skipped: {report.tiers_skipped}")
    print(f"Pivots: {report.pivots}, valid candidates: {report.valid_candidates}")
    print(f"Inserted: {report.inserted}, merged: {report.merged}, consolidated: {report.consolidated}")

    # 2. Catalog summary
    print("\n📊 Level Catalog:")
    print("-" * 30)
    for tier in Tier:
        print(
            f"{tier.value}: {engine.active_level_count('EURUSD', tier)} levels, "
            f"average strength {engine.average_strength('EURUSD', tier):.1f}"
        )

    # 3. Queries around the last close
    price = float(provider.fetch_bars("EURUSD", Tier.H1, 1)['close'].iloc[0])
    print(f"\n🎯 Queries at {price:.5f}")
    print("-" * 30)

    support = engine.strongest_level("EURUSD", price, want_support=True)
    resistance = engine.strongest_level("EURUSD", price, want_support=False)

    for name, level in (("Strongest support", support), ("Strongest resistance", resistance)):
        if level is None:
            print(f"{name}: none within range")
        else:
            print(
                f"{name}: {level.price:.5f} [{level.tier.value}] strength {level.strength}, "
                f"{level.touches} touches, last {level.last_touch_time:%Y-%m-%d %H:%M}"
            )

    pair = engine.nearest_pair("EURUSD", price)
    print(f"Nearest support: {pair.support.price:.5f}" if pair.support else "Nearest support: none")
    print(f"Nearest resistance: {pair.resistance.price:.5f}" if pair.resistance else "Nearest resistance: none")

    print(f"\n🎉 Scan example completed successfully!")

    return engine


def configuration_example():
    """Example of custom configuration usage"""
    print("\n⚙️ Configuration Example")
    print("=" * 30)

    config = build_config(
        proximity_ticks=15,
        min_touches=3,
        symbol_tick_sizes={"USDJPY": 0.01},
        h1={"timeframe": "1h", "lookback_bars": 600, "strength_weight": 1,
            "consolidation_multiplier": 1.0}
    )

    print("Custom configuration created:")
    print(f"- EURUSD tolerance: {config.tolerance_for('EURUSD'):.4f}")
    print(f"- USDJPY tolerance: {config.tolerance_for('USDJPY'):.2f}")
    print(f"- Minimum touches: {config.min_touches}")
    print(f"- H1 lookback: {config.h1.lookback_bars} bars")
    print(f"- Tier weights: {config.strength_weights()}")

    return config


def error_handling_example():
    """Example of error handling"""
    print("\n⚠️ Error Handling Example")
    print("=" * 30)

    from sr_levels.utils.exceptions import (
        ConfigurationException,
        DataUnavailableException,
        InvalidDataException
    )

    # 1. Invalid configuration
    print("1. Testing invalid configuration...")
    try:
        build_config(store_capacity=0)
    except ConfigurationException as e:
        print(f"✅ Caught expected error: {e}")

    # 2. Missing tier data is skipped, not raised
    print("\n2. Testing missing tier data...")
    provider = DataFrameProvider({("GBPUSD", Tier.DAILY): generate_sample_data(250, 'D', seed=4)})
    engine = SupportResistanceEngine(provider, build_config())
    report = engine.scan_symbol("GBPUSD")
    print(f"✅ Skipped tiers: {report.tiers_skipped}")

    try:
        provider.fetch_bars("GBPUSD", Tier.H1, 100)
    except DataUnavailableException as e:
        print(f"✅ Caught expected error: {e}")

    # 3. Malformed symbol
    print("\n3. Testing malformed symbol...")
    try:
        engine.scan_symbol("?")
    except InvalidDataException as e:
        print(f"✅ Caught expected error: {e}")

    print("\n✅ Error handling examples completed")


if __name__ == "__main__":
    """Main execution"""
    print("📐 Support/Resistance Levels - Basic Usage Examples")
    print("=" * 60)
    print(f"Execution started at: {datetime.now()}")

    try:
        basic_scan_example()
        configuration_example()
        error_handling_example()

        print("\n" + "=" * 60)
        print("🎉 All examples completed successfully!")
        print(f"Execution finished at: {datetime.now()}")

    except Exception as e:
        print(f"\n❌ Example failed with error: {e}")
        import traceback
        traceback.print_exc()
