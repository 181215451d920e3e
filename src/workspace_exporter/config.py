from __future__ import annotations

from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, computed_field

_ = Path()

BINARY_SNIFF_BYTES = 8000
BINARY_PLACEHOLDER = "[Binary File Omitted]"
READ_ERROR_MARKER = "ERROR READING FILE"

HEADER_BEGIN = "<<<WORKSPACE_EXPORTER_FILE_BEGIN>>>"
HEADER_END = "<<<WORKSPACE_EXPORTER_FILE_END>>>"

TREE_HEADER = "Project Structure:"
TREE_SEPARATOR = "=" * 50


class OutputFormat(StrEnum):
    """Serialization variant used for every file of an export.

    PLAIN wraps content between sentinel lines, MARKUP renders markdown code
    fences and STRUCTURED renders XML-like `<file>` elements. The values are the
    names accepted on the command line and in the config file.
    """

    PLAIN = "text"
    MARKUP = "markdown"
    STRUCTURED = "xml"

    @property
    def extension(self) -> str:
        """File extension (without dot) for artifacts written in this format."""
        return _EXTENSIONS[self]


_EXTENSIONS: dict[OutputFormat, str] = {
    OutputFormat.PLAIN: "txt",
    OutputFormat.MARKUP: "md",
    OutputFormat.STRUCTURED: "xml",
}

DEFAULT_EXCLUDES = {
    ".git",
    ".venv",
    "venv",
    ".env",
    "__pycache__",
    ".mypy_cache",
    ".ruff_cache",
    ".pytest_cache",
    ".ipynb_checkpoints",
    "node_modules",
    "dist",
    "build",
    "coverage",
    ".idea",
    ".vscode",
    ".DS_Store",
}

_DOCKER = "Dockerfile,docker-compose.yml,docker-compose.yaml,.dockerignore"
_WEB_EXCLUDE = "**/{node_modules,dist,build,.git,.idea,.vscode,coverage}/**"
_PY_EXCLUDE = "**/{node_modules,venv,.venv,env,.env,dist,build,.git,.idea,.vscode,coverage,__pycache__}/**"


class FileIdentifier(BaseModel):
    """A file selected for export.

    Attributes:
        path: Location of the file in the backing store (absolute path on disk).
        rel: Slash-separated path relative to the project root. This is the
            identity of the file within one export and its sort key.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    path: Path = Field(..., description="Absolute file path")
    rel: str = Field(..., description="File path relative to project root, POSIX separators")


class FileRecord(BaseModel):
    """Content of one file as seen by the encoder.

    `content` is the decoded text, or one of the fixed markers when the file is
    binary (`BINARY_PLACEHOLDER`) or could not be read (`READ_ERROR_MARKER`).
    """

    model_config = ConfigDict(frozen=True)

    rel: str = Field(..., description="File path relative to project root")
    content: str = Field(..., description="Decoded text or marker")
    is_binary: bool = Field(default=False, description="Null byte found in the sniffed prefix")
    error: bool = Field(default=False, description="Read or decode failed")


class Segment(BaseModel):
    """One bounded part of an export, ready for a sink.

    Attributes:
        index: 1-based position of the segment in emission order.
        text: Concatenated fragments (the first segment may start with the tree).
        tokens: Estimated cost of `text`.
        paths: Relative paths whose fragments are in this segment, in order.
    """

    model_config = ConfigDict(frozen=True)

    index: int = Field(..., ge=1)
    text: str
    tokens: int = Field(..., ge=0)
    paths: tuple[str, ...] = ()

    @computed_field
    @property
    def file_count(self) -> int:
        """Number of file fragments in the segment."""
        return len(self.paths)


class TemplateDefinition(BaseModel):
    """Named file selection preset.

    `pattern` and `exclude` are globs relative to the project root and may use
    `**` and `{a,b}` alternation.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    description: str = ""
    pattern: str
    exclude: str = ""


BUILTIN_TEMPLATES: list[TemplateDefinition] = [
    TemplateDefinition(
        id="react_vite_ts_tailwind",
        label="React + Vite + TypeScript + Tailwind",
        description="Typical Vite+React+TS+Tailwind project: src, config files, docs.",
        pattern=(
            "**/{" + _DOCKER + ",*.ts,*.tsx,*.js,*.jsx,*.html,*.css,*.scss,*.sass,"
            "*.json,*.md,*.cjs,*.mjs,*.config.js,*.config.ts}"
        ),
        exclude=_WEB_EXCLUDE,
    ),
    TemplateDefinition(
        id="generic_web",
        label="Generic Web Project",
        description="HTML, CSS, JS/TS, configs, docs.",
        pattern=(
            "**/{" + _DOCKER + ",*.ts,*.tsx,*.js,*.jsx,*.html,*.css,*.scss,*.sass,"
            "*.less,*.styl,*.json,*.md}"
        ),
        exclude=_WEB_EXCLUDE,
    ),
    TemplateDefinition(
        id="all_text_code",
        label="All text & code files",
        description="Any .txt, .md, code, configs for broad export.",
        pattern=(
            "**/{" + _DOCKER + ",*.txt,*.md,*.ts,*.tsx,*.js,*.jsx,*.html,*.css,*.scss,"
            "*.sass,*.json,*.cjs,*.mjs,*.kt,*.java,*.py,*.php,*.rb,*.go,*.rs,*.c,*.cpp,"
            "*.h,*.hpp,*.cs,*.swift,*.dart,*.lua,*.sh,*.yaml,*.yml,*.toml,*.xml,"
            "*.gradle,*.properties,*.sql}"
        ),
        exclude="**/{node_modules,dist,build,.git,.idea,.vscode,coverage,bin,obj,target}/**",
    ),
    TemplateDefinition(
        id="node_express_api",
        label="Node + Express API",
        description="Exports JS/TS, JSON, env examples, docs for a Node/Express API.",
        pattern="**/{" + _DOCKER + ",*.js,*.jsx,*.ts,*.tsx,*.json,*.md,*.env.example,*.env.sample}",
        exclude=_WEB_EXCLUDE,
    ),
    TemplateDefinition(
        id="python_data_science",
        label="Python (Data Science)",
        description="Python scripts, notebooks, data configs, and docs.",
        pattern="**/{" + _DOCKER + ",*.py,*.ipynb,*.json,*.yaml,*.yml,*.md,*.txt,*.csv,*.tsv}",
        exclude=_PY_EXCLUDE,
    ),
    TemplateDefinition(
        id="python_web_django_flask",
        label="Python Web (Django/Flask)",
        description="Python source, templates (HTML), static files (CSS/JS), and configs.",
        pattern="**/{" + _DOCKER + ",*.py,*.html,*.css,*.js,*.json,*.yaml,*.yml,*.md,*.txt,*.ini,*.wsgi}",
        exclude="**/{node_modules,venv,.venv,env,.env,dist,build,.git,.idea,.vscode,coverage,__pycache__,staticfiles}/**",
    ),
    TemplateDefinition(
        id="java_maven_gradle",
        label="Java (Maven/Gradle)",
        description="Java source, build configs (pom.xml, build.gradle), and docs.",
        pattern="**/{" + _DOCKER + ",*.java,*.xml,*.gradle,*.properties,*.md,*.txt,*.kts}",
        exclude="**/{node_modules,target,build,bin,.git,.idea,.vscode,coverage,.gradle}/**",
    ),
    TemplateDefinition(
        id="go_lang",
        label="Go Project",
        description="Go source files, mod/sum files, and docs.",
        pattern="**/{" + _DOCKER + ",*.go,*.mod,*.sum,*.md,*.txt,*.json,*.yaml,*.yml}",
        exclude="**/{node_modules,dist,build,bin,.git,.idea,.vscode,coverage,vendor}/**",
    ),
    TemplateDefinition(
        id="rust_lang",
        label="Rust Project",
        description="Rust source files, Cargo.toml/lock, and docs.",
        pattern="**/{" + _DOCKER + ",*.rs,*.toml,*.md,*.txt,*.json,*.yaml,*.yml}",
        exclude="**/{node_modules,target,dist,build,.git,.idea,.vscode,coverage}/**",
    ),
    TemplateDefinition(
        id="cpp_project",
        label="C/C++ Project",
        description="C/C++ source/headers, Makefiles, CMakeLists, and docs.",
        pattern=(
            "**/{" + _DOCKER + ",*.c,*.cpp,*.h,*.hpp,*.cc,*.hh,*.cxx,*.hxx,*.make,*.cmake,"
            "*.txt,*.md,*.json,*.yaml,*.yml,*.in}"
        ),
        exclude="**/{node_modules,dist,build,bin,obj,.git,.idea,.vscode,coverage,.vs}/**",
    ),
    TemplateDefinition(
        id="devops_infra",
        label="DevOps / Infrastructure",
        description="Terraform, Docker, Kubernetes, Shell scripts, and CI/CD configs.",
        pattern=(
            "**/{" + _DOCKER + ",*.tf,*.tfvars,*.hcl,*.dockerfile,*.yaml,*.yml,*.sh,*.bash,"
            "*.zsh,*.json,*.md,*.txt,*.conf,*.ini}"
        ),
        exclude="**/{node_modules,dist,build,.git,.idea,.vscode,coverage,.terraform}/**",
    ),
    TemplateDefinition(
        id="documentation",
        label="Documentation Only",
        description="Markdown, text, reStructuredText, and other doc files.",
        pattern="**/{*.md,*.txt,*.rst,*.adoc}",
        exclude=_WEB_EXCLUDE,
    ),
]
