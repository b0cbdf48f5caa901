import yaml
from pathlib import Path

def catalog_to_markdown(yaml_file: Path, output_dir: Path):
    """Convert the signal catalogue YAML to Markdown for MkDocs"""
    with open(yaml_file) as f:
        data = yaml.safe_load(f)

    md_lines = [
        "# Signal Catalogue",
        "",
        "Named signals available through `shotsearch.signals.load_signal_catalog()`.",
        "Units are reported by the data store at fetch time and never converted.",
        "",
    ]

    for name, entry in data.get('signals', {}).items():
        md_lines.extend([
            f"## `{name}`",
            "",
            entry.get('description', ''),
            "",
            f"**Type:** `{entry.get('type', '')}`  ",
        ])

        if 'expression' in entry:
            md_lines.append(f"**MDSplus Expression:** `{entry['expression']}`  ")
        if 'tree' in entry:
            md_lines.append(f"**Tree:** `{entry['tree']}`  ")
        if 'pointname' in entry:
            md_lines.append(f"**PTDATA Point Name:** `{entry['pointname']}`  ")
        if 'path' in entry:
            md_lines.append(f"**Zarr Path:** `{entry['path']}`  ")
        if 'notes' in entry:
            md_lines.extend(["", f"> {entry['notes']}"])

        md_lines.append("")

    output_file = output_dir / "signals.md"
    output_file.write_text('\n'.join(md_lines))

# Usage
docs_dir = Path('docs')
docs_dir.mkdir(parents=True, exist_ok=True)

catalog_to_markdown(Path('shotsearch/signals/catalog.yaml'), docs_dir)
