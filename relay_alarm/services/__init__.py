"""
Relay scheduling core.

- timing: pure per-relay state computation
- scheduler: adaptive tick loop with the publish gate
- broadcast: subscriber fan-out
- commands: command handlers over the owned state
"""
