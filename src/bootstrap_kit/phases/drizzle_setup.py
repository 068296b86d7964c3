"""Phase 08: install Drizzle ORM, postgres.js and drizzle-kit."""

from ..phase import Kit, Phase, Verification, phase_main, register_phase

DRIZZLE_CONFIG = """\
import type { Config } from "drizzle-kit";

/**
 * Drizzle Kit Configuration
 *
 * Used for migrations and schema introspection.
 * Connection details come from environment variables.
 */
export default {
  schema: "./src/db/schema.ts",
  out: "./src/db/migrations",
  dialect: "postgresql",
  dbCredentials: {
    url: process.env.DATABASE_URL!,
  },
  // Verbose logging during development
  verbose: true,
  // Strict mode for safer migrations
  strict: true,
} satisfies Config;
"""

RUNTIME_DEPENDENCIES = ("drizzle-orm", "postgres")
DEV_DEPENDENCIES = ("drizzle-kit",)

DB_SCRIPTS = {
    "db:generate": "drizzle-kit generate",
    "db:migrate": "drizzle-kit migrate",
    "db:push": "drizzle-kit push",
    "db:studio": "drizzle-kit studio",
    "db:drop": "drizzle-kit drop",
}


@register_phase
class DrizzleSetup(Phase):
    id = "08"
    name = "drizzle-setup"
    description = "Install and configure Drizzle ORM with postgres.js"
    actions = (
        "Installs drizzle-orm and postgres.js driver",
        "Installs drizzle-kit as dev dependency",
        "Creates drizzle.config.ts configuration file",
        "Adds db:* scripts to package.json",
    )

    def preconditions(self, kit: Kit):
        yield kit.require_package_manager()
        yield kit.require_file("package.json", "Initialize project first")

    def apply(self, kit: Kit) -> None:
        kit.step("Installing Drizzle ORM dependencies")
        for name in RUNTIME_DEPENDENCIES:
            kit.manifest.add_dependency(name)

        kit.step("Installing drizzle-kit")
        for name in DEV_DEPENDENCIES:
            kit.manifest.add_dependency(name, dev=True)

        kit.step("Creating drizzle.config.ts")
        kit.files.write_file("drizzle.config.ts", DRIZZLE_CONFIG)

        kit.step("Adding database scripts to package.json")
        for script, command in DB_SCRIPTS.items():
            kit.manifest.add_script(script, command)

    def verify(self, kit: Kit):
        manifest = kit.manifest.load()
        for name in RUNTIME_DEPENDENCIES:
            yield Verification(name in manifest.dependencies, f"{name} listed in dependencies")
        for name in DEV_DEPENDENCIES:
            yield Verification(name in manifest.dev_dependencies, f"{name} listed in devDependencies")
        yield Verification(kit.file_exists("drizzle.config.ts"), "drizzle.config.ts created")
        for script, command in DB_SCRIPTS.items():
            yield Verification(manifest.scripts.get(script) == command, f"script {script} registered")


if __name__ == "__main__":
    phase_main(DrizzleSetup)
