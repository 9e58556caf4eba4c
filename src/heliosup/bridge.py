"""Rendering of the generated Rust boundary module.

Both platforms export the same opaque client type. The entry point names
form a contract with the mobile runtime bridge, which calls
``<library>_start`` and ``<library>_get_block_number`` by name.
"""

from __future__ import annotations

import textwrap

from heliosup.config import BuildConfig
from heliosup.models import BridgeEntryPoint, BridgeModule

EXPORTED_TYPE = "RustApp"
NO_CLIENT_BLOCK_NUMBER = "-1"

CLIENT_IMPORTS = (
    "use ::client::{database::FileDB, Client, ClientBuilder};",
    "use ::config::networks;",
)


def start_entry_point(config: BuildConfig) -> BridgeEntryPoint:
    return BridgeEntryPoint(
        name=f"{config.library_name}_start",
        params=(("untrusted_rpc_url", "String"), ("consensus_rpc_url", "String")),
    )


def block_number_entry_point(config: BuildConfig) -> BridgeEntryPoint:
    return BridgeEntryPoint(name=f"{config.library_name}_get_block_number", returns="String")


def render_extern_block(module: BridgeModule, *, init_attribute: str | None = None) -> str:
    """Render the ``extern "Rust"`` declarations for ``module``."""
    lines = ['  extern "Rust" {', f"    type {module.type_name};", ""]
    if init_attribute is not None:
        lines.append(f"    {init_attribute}")
    lines.append(f"    fn new() -> {module.type_name};")
    lines.append("")
    lines.extend(f"    {entry.signature()};" for entry in module.entry_points)
    lines.append("  }")
    return "\n".join(lines)


def render_client_impl(module: BridgeModule, config: BuildConfig) -> str:
    """Render the exported type and the methods listed in ``module``."""
    bodies = {
        start_entry_point(config).name: _start_body(config),
        block_number_entry_point(config).name: _block_number_body(),
    }
    methods = [
        textwrap.indent(f"{entry.signature()} {{\n{bodies[entry.name]}}}", "  ")
        for entry in module.entry_points
    ]
    return (
        f"pub struct {module.type_name} {{\n"
        "  client: Option<Client<FileDB>>,\n"
        "}\n"
        "\n"
        f"impl {module.type_name} {{\n"
        "  pub fn new() -> Self {\n"
        f"    {module.type_name} {{ client: None }}\n"
        "  }\n"
        "\n"
        + "\n\n".join(methods)
        + "\n}\n"
    )


def _start_body(config: BuildConfig) -> str:
    return textwrap.indent(
        textwrap.dedent(f"""\
            let mut client = ClientBuilder::new()
              .network(networks::Network::{config.network})
              .consensus_rpc(&consensus_rpc_url)
              .execution_rpc(&untrusted_rpc_url)
              .rpc_port({config.rpc_port})
              .build()
              .unwrap();

            client.start().await.unwrap();

            self.client = Some(client);
        """),
        "  ",
    )


def _block_number_body() -> str:
    return textwrap.indent(
        textwrap.dedent(f"""\
            if let Some(client) = &self.client {{
              return client.get_block_number().await.unwrap().to_string();
            }}
            "{NO_CLIENT_BLOCK_NUMBER}".to_string()
        """),
        "  ",
    )
