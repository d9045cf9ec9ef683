"""Living World — world state for a chat host's generations.

Settings persistence (SettingsStore), lorebook/profile collaborators, and the
pre-generation interceptor hook (InterceptorGate).
"""
