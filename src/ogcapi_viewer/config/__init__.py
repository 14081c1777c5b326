# SPDX-License-Identifier: EUPL-1.2
# SPDX-FileCopyrightText: © 2025-present Jürgen Mülbert

"""
ogcapi-viewer Configuration Module.

Everything the viewer needs before it can talk to a server:

- `settings_manager.py`: loads the static configuration document (TOML file
  or JSON URL) with the default server, supported locales and logging setup.
- `preferences.py`: persisted server URL and locale.
- `resolver.py`: the `ConfigResolver` and its precedence rules for server URL
  and locale.
- `translation_manager.py`: the `LocaleManager`, which loads and caches message
  catalogs and tracks the active locale and text direction.
- `logging_bootstrap.py` / `logging_manager.py`: structlog setup, first minimal,
  then from the configuration document.
- `appcontext.py`: the `AppContext` that bundles the above for one session.
"""
