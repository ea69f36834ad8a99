import click
from autoinject import injector
from originfs.boot import init_originfs
from originfs.names import parse_uri
from originfs.provider import extract_connect_timeout
from originfs.registry import FileProviderRegistry


@click.group
def main():
    init_originfs()


@main.command
@click.argument("uri")
@click.option("--option", "-o", "options", multiple=True, help="File system option as NAME=VALUE")
@injector.inject
def resolve(uri, options, registry: FileProviderRegistry = None):
    try:
        file = registry.find_file(uri, _parse_options(options))
        print(f"{file}: {'exists' if file.exists() else 'does not exist'}")
    finally:
        registry.close_all()


@main.command
@click.argument("uri")
def root(uri):
    name = parse_uri(None, uri)
    timeout = extract_connect_timeout(uri)
    print(str(name.root()))
    if timeout is not None:
        print(f"Connect timeout: {timeout}ms")


def _parse_options(options):
    values = {}
    for option in options:
        if "=" not in option:
            raise click.BadParameter(f"Option [{option}] is not in NAME=VALUE format")
        name, value = option.split("=", 1)
        values[name.strip()] = value.strip()
    return values
