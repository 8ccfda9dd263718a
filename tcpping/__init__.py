"""TCP connect prober.

Periodically measures TCP reachability and connect latency for a set of
independently configured targets, keeps rolling latency statistics per
target and emits structured probe, stats and DNS-update events.

Key modules:
    parser      -- target descriptor parsing into TaskDefinition/TaskState
    params      -- ProbeParams resolution from descriptor query options
    resolver    -- HostnameResolver and DnsRefreshPolicy
    stats       -- LatencyStats fixed-window statistics engine
    base        -- BaseProber probe cycle
    probers     -- TCPProber connect-only probe
    scheduler   -- Scheduler per-task jittered loop
    controller  -- ProbeController running all task loops
    factory     -- ProberFactory building probers from descriptors
    sinks       -- EventSink and its console / rotating-file / null variants
    models      -- task, stats and event dataclasses
"""

__version__ = "0.1.0"
