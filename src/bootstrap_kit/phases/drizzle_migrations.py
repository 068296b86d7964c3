"""Phase 10: migration directory, helper scripts, seed template and db:seed."""

from ..phase import Kit, Phase, Verification, phase_main, register_phase

MIGRATIONS_DIR = "src/db/migrations"

# Waits for Postgres, then applies pending migrations (container startup / CI)
MIGRATE_SCRIPT = r"""#!/usr/bin/env bash
# =============================================================================
# Run Drizzle migrations
# Used during container startup and CI/CD
# =============================================================================

set -euo pipefail

echo "Running database migrations..."

# Wait for database to be ready
MAX_RETRIES=30
RETRY_INTERVAL=2

for i in $(seq 1 $MAX_RETRIES); do
    if node -e "
        const postgres = require('postgres');
        const sql = postgres(process.env.DATABASE_URL);
        sql\`SELECT 1\`.then(() => {
            sql.end();
            process.exit(0);
        }).catch(() => process.exit(1));
    " 2>/dev/null; then
        echo "Database is ready!"
        break
    fi

    if [ $i -eq $MAX_RETRIES ]; then
        echo "Error: Database not ready after $MAX_RETRIES attempts"
        exit 1
    fi

    echo "Waiting for database... (attempt $i/$MAX_RETRIES)"
    sleep $RETRY_INTERVAL
done

# Run migrations
echo "Applying migrations..."
pnpm db:migrate

echo "Migrations complete!"
"""

SEED_SCRIPT = """\
#!/usr/bin/env bash
# =============================================================================
# Seed database with initial data
# =============================================================================

set -euo pipefail

echo "Seeding database..."

# Run TypeScript seed file
pnpm tsx src/db/seed.ts

echo "Seeding complete!"
"""

SEED_TS = """\
import { db } from "./index";

/**
 * Seed the database with initial data
 *
 * Run with: pnpm db:seed
 */
async function seed() {
  console.log("Starting database seed...");

  // Insert rows with .onConflictDoNothing() so seeding can be re-run, e.g.:
  // await db.insert(appSettings).values([...]).onConflictDoNothing();
  void db;

  console.log("Database seeded successfully!");
}

seed()
  .catch((error) => {
    console.error("Seed failed:", error);
    process.exit(1);
  })
  .finally(async () => {
    process.exit(0);
  });
"""

MIGRATIONS_README = """\
# Database Migrations

## Commands

```bash
# Generate migration from schema changes
pnpm db:generate

# Apply pending migrations
pnpm db:migrate

# Push schema directly (development only)
pnpm db:push

# Open Drizzle Studio (database browser)
pnpm db:studio

# Seed database with initial data
pnpm db:seed
```

## Workflow

1. Modify `src/db/schema.ts`
2. Run `pnpm db:generate` to create migration
3. Review generated SQL in `src/db/migrations/`
4. Run `pnpm db:migrate` to apply

## Container Startup

Migrations are applied on container startup via `scripts/migrate.sh`.

## Notes

- Never edit migration files after they have been applied to production
- Use `pnpm db:push` only in development for rapid iteration
- Always review generated migrations before applying
"""

EXECUTABLE_SCRIPTS = {
    "scripts/migrate.sh": MIGRATE_SCRIPT,
    "scripts/seed.sh": SEED_SCRIPT,
}


@register_phase
class DrizzleMigrations(Phase):
    id = "10"
    name = "drizzle-migrations"
    description = "Configure Drizzle migration infrastructure"
    actions = (
        "Creates migration directory structure",
        "Adds migration and seed helper scripts for container startup",
        "Creates a TypeScript seed file template",
        "Adds db:seed to package.json and installs tsx",
        "Creates migration README with usage instructions",
    )

    def preconditions(self, kit: Kit):
        yield kit.require_file("package.json", "Initialize project first")
        yield kit.require_file("drizzle.config.ts", "Run phase 08 first")
        yield kit.require_package_manager()

    def apply(self, kit: Kit) -> None:
        kit.step("Creating migrations directory")
        kit.files.add_gitkeep(MIGRATIONS_DIR)

        kit.step("Creating migration and seed runner scripts")
        kit.files.ensure_dir("scripts")
        for path, content in EXECUTABLE_SCRIPTS.items():
            kit.files.write_file(path, content, executable=True)

        kit.step("Creating seed file template")
        kit.files.write_file("src/db/seed.ts", SEED_TS)

        kit.step("Adding seed script to package.json")
        kit.manifest.add_script("db:seed", "tsx src/db/seed.ts")

        kit.step("Installing tsx for TypeScript execution")
        kit.manifest.add_dependency("tsx", dev=True)

        kit.step("Creating migrations README")
        kit.files.write_file(f"{MIGRATIONS_DIR}/README.md", MIGRATIONS_README)

    def verify(self, kit: Kit):
        yield Verification(kit.file_exists(f"{MIGRATIONS_DIR}/.gitkeep"), f"{MIGRATIONS_DIR} tracked")
        for path in EXECUTABLE_SCRIPTS:
            yield Verification(kit.is_executable(path), f"{path} is executable")
        yield Verification(kit.file_exists("src/db/seed.ts"), "src/db/seed.ts created")
        manifest = kit.manifest.load()
        yield Verification(manifest.scripts.get("db:seed") == "tsx src/db/seed.ts", "script db:seed registered")
        yield Verification("tsx" in manifest.dev_dependencies, "tsx listed in devDependencies")
        readme = f"{MIGRATIONS_DIR}/README.md"
        yield Verification(kit.file_exists(readme), f"{readme} created")


if __name__ == "__main__":
    phase_main(DrizzleMigrations)
