"""Example composing a pipeline from the catalog and printing its YAML."""

import asyncio

from pipekit import PipelineEditor, PipelineMetadata, StepKind, get_catalog
from pipekit.config import load_config


async def main():
    """Add a conformance check and an email notification, then validate."""
    config = load_config()
    catalog = get_catalog(config=config)

    editor = PipelineEditor(
        catalog,
        metadata=PipelineMetadata(name="Nightly conformance"),
        activity_options=config.activity_options,
        search=config.search,
    )

    # Pick the first test of the first standard
    form = editor.builder.init_add_step(StepKind.CONFORMANCE_CHECK)
    await form.load()
    if form.standards:
        await form.select_standard(form.standards[0])
        for level in ("version", "suite", "test"):
            if form.active and form.options(level):
                await form.select(level, form.options(level)[0])

    email = editor.builder.init_add_step(StepKind.EMAIL)
    issues = email.submit(recipient="qa@example.com", subject="Nightly run finished")
    for issue in issues:
        print(f"Email step: {issue}")
    await catalog.aclose()

    result = editor.validate()
    if not result.ok:
        for issue in result.issues:
            print(f"❌ {issue}")
        return

    print(editor.yaml)


if __name__ == "__main__":
    asyncio.run(main())
