"""CLI dashboard — prints a scan snapshot summary to the console."""


def print_summary(snapshot: dict, limit: int = 10) -> str:
    """Format and print the latest scan snapshot.

    Args:
        snapshot: Dict produced by ``AggregateResult.to_dict()``.
        limit: Maximum signals listed per strategy / timeframe.

    Returns:
        The formatted string (also printed to stdout).
    """
    status = snapshot.get("status", "unknown")
    generated = snapshot.get("generated_at") or "N/A"
    symbols = snapshot.get("symbol_count", 0)
    total_signals = snapshot.get("signal_count", 0)
    total_errors = snapshot.get("error_count", 0)

    lines = [
        "──────────────── WaveScan Snapshot ────────────────",
        f"  Status:          {status}",
        f"  Generated:       {generated}",
        f"  Symbols:         {symbols}",
        f"  Signals:         {total_signals}",
        f"  Errors:          {total_errors}",
    ]

    for interval, strategies in snapshot.get("timeframes", {}).items():
        for strategy, result in strategies.items():
            signals = result.get("signals", [])
            lines.append(
                f"  [{interval} {strategy}] {len(signals)} signal(s), "
                f"{result.get('error_count', 0)} error(s)"
            )
            for s in signals[:limit]:
                rsi = s.get("rsi")
                rsi_str = f"{rsi:.1f}" if rsi is not None else "—"
                conf = s.get("confidence")
                conf_str = f" conf={conf}" if conf is not None else ""
                lines.append(
                    f"    {s['date']}  {s['type'].upper():<4} {s['symbol']:<6}"
                    f" @ {s['price']:.2f}  RSI {rsi_str}{conf_str}"
                )

    lines.append("──────────────────────────────────────────────────")
    output = "\n".join(lines)
    print(output)
    return output
