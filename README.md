# statora

`statora` is a Python library for managing PHP versions, Composer versions
and PHP extensions per project. PHP is built from the official source
tarballs, Composer releases are fetched as PHARs, and extensions are
installed with PECL or built with `phpize` when PECL is not available.

Everything lives under `<home>/.statora`:

| Path                              | Contents                                      |
|-----------------------------------|-----------------------------------------------|
| `runtimes/php/<version>`          | compiled PHP installations                    |
| `composer/<version>`              | `composer.phar` and a `bin/composer` wrapper  |
| `versions/global.toml`            | the global PHP/Composer selection             |
| `cache/downloads`, `cache/builds` | source archives and build trees               |
| `.rescache`                       | the currently active versions                 |
| `errors/<category>/<date>.log`    | logs of failed install stages                 |

## Choosing versions

A project pins its versions in a `.statora` file (TOML) in its root:

```toml
php = "8.2"
composer = "2.7.1"
extensions = ["redis", "xdebug"]
```

`statora.resolver.Resolver.resolve(directory)` returns a `Resolution` with
`php`, `composer` and `source` (`"project"`, `"global"` or `"none"`). A
partial version such as `8.2` maps to the highest matching installed
version and is kept as written when nothing matches. If `composer` is left
out, the Composer range comes from the built-in compatibility matrix in
`statora.compat`. Without a project file, `versions/global.toml` is used.

```python
from statora.config import load_config, GlobalConfig
from statora.resolver import Resolver
from statora.compat import resolve_composer

cfg = load_config()                      # creates ~/.statora if needed
cfg.write_global(GlobalConfig(php="8.3.0"))
print(Resolver(cfg).resolve("."))
print(resolve_composer("8.2.15"))        # ">= 2.2.0, < 3.0.0"
```

`statora.versions` offers `parse_version`, `parse_constraint` (ranges such
as `">= 2.2.0, < 3.0.0"` or `"^8.1 || 7.4.x"`) and `normalize_installed`.

## Installing

- `statora.php.PhpPlugin`: `install`, `uninstall`, `list_versions`,
  `installed_versions`, `is_installed`, `which`, `rehash`.
- `statora.composer.ComposerManager`: `install` (a concrete version, a
  partial version such as `2`, or a constraint), `uninstall`,
  `list_versions`, `is_installed`, `phar`, `create_wrapper_script`.
- `statora.extension.ExtensionInstaller` for one PHP version: `install`,
  `enable`, `disable`, `is_available`, `is_enabled`, `list_available`,
  `list_enabled`.

Installs run as a `statora.pipeline.Pipeline` of stages; a failing stage
raises `StageError` and appends an entry to the error log.

`statora.app.Services.create(debug=False, home=None)` builds the
configuration, logger, resolver, PHP plugin and Composer manager together;
`Services.extensions(php_version)` returns an `ExtensionInstaller`.

## Switching

`statora.switcher.Switcher.build_plan(directory)` lists what will change;
`render_plan` and `prompt_confirm` show it and ask for confirmation;
`Switcher.execute(plan)` installs missing PHP or Composer versions, enables
the extensions listed in `.statora`, and records the active versions via
`statora.dispatch`.

## Shell integration

`statora.shell.detect_shell(shell_env, flag_value)` picks `zsh`, `bash` or
`fish`, and `print_env(stream, shell)` writes a hook that runs
`statora use --shell <shell>` on each directory change.
`statora.use.print_use` writes the `PATH` export that puts the active PHP
and Composer `bin` directories first, after dropping earlier
`~/.statora/` entries.

## Argument-parser commands

`statora.cli_switch`, `statora.cli_composer` and `statora.cli_ext` each have
`register(subparsers)`, which adds argparse subcommands (`switch`, `use`;
`composer install|uninstall|list|global|local|current|compat`;
`ext install|uninstall|enable|disable|list|info`). Each subcommand sets a
`handler(args, services)` default:

```python
import argparse
from statora import cli_composer, cli_ext, cli_switch
from statora.app import Services

parser = argparse.ArgumentParser(prog="statora")
sub = parser.add_subparsers(dest="command", required=True)
for module in (cli_switch, cli_composer, cli_ext):
    module.register(sub)

args = parser.parse_args(["composer", "compat", "8.2.15"])
args.handler(args, Services.create())
```

## What the package does not do

- It installs no executable. The hook from `print_env` calls a `statora`
  program on `PATH`; you have to provide one, for instance with the parser
  shown above.
- There are no argparse commands for PHP versions (install, list, select
  global or local, show current); use `PhpPlugin` and `Config.write_global`
  directly. There are also no `env` or `version` commands.