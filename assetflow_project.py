# assetflow_project.py
# Example project: a core library, two plugins built on it, and the web app shell
from __future__ import annotations
from assetflow import build, command, project, unit

def project_definition():
    return project(
        # Shared widgets and theme; everything else builds on top of it
        unit("core", "ts", "less", path="plugins/core"),

        # Plugins only declare what they need; asset types are probed from disk
        unit("charts", needs=["core"], path="plugins/charts"),
        unit("editor", needs=["core"], path="plugins/editor"),

        # App shell bundles the stylesheets of every plugin
        build("webapp")
            .with_types("ts", "e2e", "css")
            .depends_on("charts", "editor")
            .at("apps/webapp")
            .build(),

        commands=[
            command("e2e", "npx tsc -p {assets}/e2e --outDir {assets}/e2e/out"),
            command("css", "npx postcss {assets}/css/imports.css -o {assets}/css/bundle.css"),
        ],
        ts="npx tsc -p {assets}/ts",
        less="npx lessc {assets}/less/main.less {assets}/less/main.css",
    )
