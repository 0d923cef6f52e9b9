"""
zerohatch.templates.stacks - Base Templates
===========================================

One builder per stack. Each returns a fresh :class:`ProjectTemplate` listing
the stack's files (bodies in ``<stack>/*.j2``), its dependency maps and,
for Node stacks, its ``package.json`` scripts.
"""

from __future__ import annotations

from collections.abc import Callable

from zerohatch.models import ProjectType, Runtime
from zerohatch.templates import ProjectTemplate, TemplateFile, packaged


# Versions shared by every Node stack
NODE_LINT_DEV_DEPENDENCIES = {
    "@typescript-eslint/eslint-plugin": "^7.18.0",
    "@typescript-eslint/parser": "^7.18.0",
    "eslint": "^8.57.0",
    "eslint-config-prettier": "^9.1.0",
    "prettier": "^3.3.3",
}

REACT_TESTING_DEV_DEPENDENCIES = {
    "@testing-library/jest-dom": "^6.4.8",
    "@testing-library/react": "^16.0.0",
    "@testing-library/dom": "^10.4.0",
    "@types/jest": "^29.5.12",
    "@types/node": "^20.14.0",
    "@types/react": "^18.3.3",
    "@types/react-dom": "^18.3.0",
}

PYTHON_DEV_DEPENDENCIES = {
    "mypy": ">=1.11",
    "pre-commit": ">=3.8",
    "pytest": ">=8.3",
    "ruff": ">=0.6",
}

GITIGNORES = {
    Runtime.NODE: "common/node/gitignore.j2",
    Runtime.PYTHON: "common/python/gitignore.j2",
}


def shared_files(stack: str, runtime: Runtime) -> list[TemplateFile]:
    """Readme, license, ignore file and editor config for ``runtime``."""
    common = f"common/{runtime.value}"
    files = [
        packaged(stack, "README.md"),
        TemplateFile("LICENSE", source="common/LICENSE_MIT.j2"),
        TemplateFile(".gitignore", source=GITIGNORES[runtime]),
        packaged(common, ".editorconfig"),
    ]
    if runtime is Runtime.NODE:
        files += [
            packaged(common, ".eslintrc.json", feature="linting"),
            packaged(common, ".prettierrc.json", feature="prettier"),
            packaged(common, ".prettierignore", feature="prettier"),
        ]
    return files


# =============================================================================
# Node Stacks
# =============================================================================


def react_typescript() -> ProjectTemplate:
    """React single-page app with TypeScript, built and tested with react-scripts."""
    stack = "react_typescript"
    return ProjectTemplate(
        name="React + TypeScript",
        type=ProjectType.REACT_TYPESCRIPT,
        files=[
            packaged(stack, "package.json"),
            packaged(stack, "tsconfig.json"),
            packaged(stack, ".env"),
            packaged(stack, "public/index.html"),
            packaged(stack, "public/manifest.json"),
            packaged(stack, "src/App.tsx"),
            packaged(stack, "src/App.css"),
            packaged(stack, "src/index.tsx"),
            packaged(stack, "src/index.css"),
            packaged(stack, "src/App.test.tsx", feature="testing"),
            packaged(stack, "src/setupTests.ts", feature="testing"),
            *shared_files(stack, Runtime.NODE),
        ],
        dependencies={
            "react": "^18.3.1",
            "react-dom": "^18.3.1",
            "react-scripts": "5.0.1",
        },
        dev_dependencies={
            **REACT_TESTING_DEV_DEPENDENCIES,
            **NODE_LINT_DEV_DEPENDENCIES,
            "typescript": "^4.9.5",
        },
        scripts={
            "start": "react-scripts start",
            "build": "react-scripts build",
            "test": "react-scripts test",
            "lint": "eslint src --ext .ts,.tsx",
            "typecheck": "tsc --noEmit",
            "format": "prettier --write \"src/**/*.{ts,tsx,css,json}\"",
            "format:check": "prettier --check \"src/**/*.{ts,tsx,css,json}\"",
        },
        configuration={
            "browserslist": {
                "production": [">0.2%", "not dead", "not op_mini all"],
                "development": [
                    "last 1 chrome version",
                    "last 1 firefox version",
                    "last 1 safari version",
                ],
            },
        },
    )


def nextjs() -> ProjectTemplate:
    """Next.js app with TypeScript, the pages router under ``src/`` and Jest."""
    stack = "nextjs"
    return ProjectTemplate(
        name="Next.js",
        type=ProjectType.NEXTJS,
        files=[
            packaged(stack, "package.json"),
            packaged(stack, "tsconfig.json"),
            packaged(stack, "next-env.d.ts"),
            packaged(stack, "next.config.js"),
            packaged(stack, "public/robots.txt"),
            packaged(stack, "src/pages/_app.tsx"),
            packaged(stack, "src/pages/index.tsx"),
            packaged(stack, "src/pages/api/health.ts"),
            packaged(stack, "src/styles/globals.css"),
            packaged(stack, "jest.config.js", feature="testing"),
            packaged(stack, "jest.setup.ts", feature="testing"),
            packaged(stack, "src/__tests__/index.test.tsx", feature="testing"),
            *shared_files(stack, Runtime.NODE),
        ],
        dependencies={
            "next": "^14.2.5",
            "react": "^18.3.1",
            "react-dom": "^18.3.1",
        },
        dev_dependencies={
            **REACT_TESTING_DEV_DEPENDENCIES,
            **NODE_LINT_DEV_DEPENDENCIES,
            "jest": "^29.7.0",
            "jest-environment-jsdom": "^29.7.0",
            "typescript": "^5.5.4",
        },
        scripts={
            "dev": "next dev -p {{ port }}",
            "build": "next build",
            "start": "next start -p {{ port }}",
            "test": "jest",
            "lint": "eslint src --ext .ts,.tsx",
            "typecheck": "tsc --noEmit",
            "format": "prettier --write \"src/**/*.{ts,tsx,css,json}\"",
            "format:check": "prettier --check \"src/**/*.{ts,tsx,css,json}\"",
        },
    )


def express_typescript() -> ProjectTemplate:
    """Express HTTP service in TypeScript, compiled with tsc and tested with Jest."""
    stack = "express_typescript"
    return ProjectTemplate(
        name="Express + TypeScript",
        type=ProjectType.EXPRESS_TYPESCRIPT,
        files=[
            packaged(stack, "package.json"),
            packaged(stack, "tsconfig.json"),
            packaged(stack, "nodemon.json"),
            packaged(stack, ".env.example"),
            packaged(stack, "src/app.ts"),
            packaged(stack, "src/index.ts"),
            packaged(stack, "src/routes/health.ts"),
            packaged(stack, "jest.config.js", feature="testing"),
            packaged(stack, "src/__tests__/app.test.ts", feature="testing"),
            *shared_files(stack, Runtime.NODE),
        ],
        dependencies={
            "express": "^4.19.2",
        },
        dev_dependencies={
            **NODE_LINT_DEV_DEPENDENCIES,
            "@types/express": "^4.17.21",
            "@types/jest": "^29.5.12",
            "@types/node": "^20.14.0",
            "@types/supertest": "^6.0.2",
            "jest": "^29.7.0",
            "nodemon": "^3.1.4",
            "supertest": "^7.0.0",
            "ts-jest": "^29.2.4",
            "ts-node": "^10.9.2",
            "typescript": "^5.5.4",
        },
        scripts={
            "dev": "nodemon",
            "build": "tsc",
            "start": "node dist/index.js",
            "test": "jest",
            "lint": "eslint src --ext .ts",
            "typecheck": "tsc --noEmit",
            "format": "prettier --write \"src/**/*.ts\"",
            "format:check": "prettier --check \"src/**/*.ts\"",
        },
    )


# =============================================================================
# Python Stacks
# =============================================================================


def python_fastapi() -> ProjectTemplate:
    """FastAPI web service: src layout, hatchling build, ruff, mypy and pytest."""
    stack = "python_fastapi"
    package = "src/{{ packageName }}"
    return ProjectTemplate(
        name="FastAPI",
        type=ProjectType.PYTHON_FASTAPI,
        files=[
            packaged(stack, "pyproject.toml"),
            TemplateFile("requirements.txt", source="common/python/requirements.txt.j2"),
            packaged(stack, ".env.example"),
            packaged(stack, f"{package}/__init__.py"),
            TemplateFile(f"{package}/py.typed"),
            packaged(stack, f"{package}/main.py"),
            packaged(stack, f"{package}/config.py"),
            packaged(stack, f"{package}/routes/__init__.py"),
            packaged(stack, f"{package}/routes/health.py"),
            packaged(stack, "tests/__init__.py"),
            packaged(stack, "tests/test_main.py", feature="testing"),
            *shared_files(stack, Runtime.PYTHON),
        ],
        dependencies={
            "fastapi": ">=0.115",
            "uvicorn[standard]": ">=0.30",
            "pydantic-settings": ">=2.4",
        },
        dev_dependencies={
            **PYTHON_DEV_DEPENDENCIES,
            "httpx": ">=0.27",
        },
    )


def python_cli() -> ProjectTemplate:
    """Command-line tool built on Typer: src layout, hatchling, ruff, mypy, pytest."""
    stack = "python_cli"
    package = "src/{{ packageName }}"
    return ProjectTemplate(
        name="Python CLI",
        type=ProjectType.PYTHON_CLI,
        files=[
            packaged(stack, "pyproject.toml"),
            TemplateFile("requirements.txt", source="common/python/requirements.txt.j2"),
            packaged(stack, f"{package}/__init__.py"),
            packaged(stack, f"{package}/__main__.py"),
            TemplateFile(f"{package}/py.typed"),
            packaged(stack, f"{package}/cli.py"),
            packaged(stack, f"{package}/core.py"),
            packaged(stack, "tests/__init__.py"),
            packaged(stack, "tests/test_cli.py", feature="testing"),
            *shared_files(stack, Runtime.PYTHON),
        ],
        dependencies={
            "typer": ">=0.12",
            "rich": ">=13.7",
        },
        dev_dependencies=dict(PYTHON_DEV_DEPENDENCIES),
    )


BUILDERS: dict[ProjectType, Callable[[], ProjectTemplate]] = {
    ProjectType.REACT_TYPESCRIPT: react_typescript,
    ProjectType.NEXTJS: nextjs,
    ProjectType.EXPRESS_TYPESCRIPT: express_typescript,
    ProjectType.PYTHON_FASTAPI: python_fastapi,
    ProjectType.PYTHON_CLI: python_cli,
}
