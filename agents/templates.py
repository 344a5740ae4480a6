"""Built-in Next.js templates for deterministic rendering.

Templates never contain visible copy. Every string a visitor can see is a JSX
expression that reads from ``src/content/site.ts``, the exported Content Pack.
Placeholders use the ``__NAME__`` form so JSX braces stay untouched.
"""

import json
import re
from typing import Dict, Iterable, List, Optional

from contracts import (
    ContentPack,
    DependencySpec,
    EnvVariable,
    FileType,
    GeneratedFile,
    ProjectIntake,
    SectionType,
)

CONTENT_DATA_PATH = "src/content/site.ts"
CONTENT_TYPES_PATH = "src/content/types.ts"

IMPRINT_SLUG = "/impressum"
PRIVACY_SLUG = "/datenschutz"
TERMS_SLUG = "/agb"

SECTION_COMPONENT_NAMES: Dict[SectionType, str] = {
    SectionType.HERO: "HeroSection",
    SectionType.FEATURES: "FeaturesSection",
    SectionType.SERVICES: "ServicesSection",
    SectionType.ABOUT: "AboutSection",
    SectionType.TEAM: "TeamSection",
    SectionType.TESTIMONIALS: "TestimonialsSection",
    SectionType.PORTFOLIO: "PortfolioSection",
    SectionType.PRICING: "PricingSection",
    SectionType.FAQ: "FaqSection",
    SectionType.CONTACT: "ContactSection",
    SectionType.CTA: "CtaSection",
    SectionType.STATS: "StatsSection",
    SectionType.LOGOS: "LogosSection",
    SectionType.TIMELINE: "TimelineSection",
    SectionType.COMPARISON: "ComparisonSection",
    SectionType.GALLERY: "GallerySection",
    SectionType.NEWSLETTER: "NewsletterSection",
    SectionType.BLOG_PREVIEW: "BlogPreviewSection",
    SectionType.CUSTOM: "CustomSection",
}

BASE_DEPENDENCIES = {
    "next": "14.2.18",
    "react": "18.3.1",
    "react-dom": "18.3.1",
}

BASE_DEV_DEPENDENCIES = {
    "typescript": "^5.4.0",
    "@types/node": "^20.0.0",
    "@types/react": "^18.3.0",
    "@types/react-dom": "^18.3.0",
    "tailwindcss": "^3.4.0",
    "postcss": "^8.4.0",
    "autoprefixer": "^10.4.0",
}


def _fill(template: str, **values: str) -> str:
    for key, value in values.items():
        template = template.replace(f"__{key}__", value)
    return template


def section_component_name(section_type: SectionType) -> str:
    return SECTION_COMPONENT_NAMES.get(section_type, "CustomSection")


def page_file_path(slug: str) -> str:
    """App Router file for a page slug: "/" -> src/app/page.tsx."""
    segments = [
        re.sub(r"[^a-z0-9_-]+", "-", segment.lower()).strip("-")
        for segment in slug.strip("/").split("/")
    ]
    segments = [s for s in segments if s]
    if not segments:
        return "src/app/page.tsx"
    return "src/app/" + "/".join(segments) + "/page.tsx"


# =============================================================================
# Content data and helpers
# =============================================================================

CONTENT_TYPES = """/* eslint-disable @typescript-eslint/no-explicit-any */
export interface Cta {
  text: string
  url: string
  variant?: string
  icon?: string | null
  iconPosition?: string
  openInNewTab?: boolean
}

export interface ImageRef {
  src: string
  alt: string
  width?: number | null
  height?: number | null
  caption?: string | null
  credit?: string | null
}

export interface Section {
  id: string
  type: string
  order: number
  headline?: string | null
  subheadline?: string | null
  eyebrow?: string | null
  description?: string | null
  content: Record<string, any>
  style?: Record<string, any>
}

export interface Page {
  id: string
  slug: string
  name: string
  title: string
  subtitle?: string | null
  description: string
  sections: Section[]
  settings?: Record<string, any>
}

export interface Seo {
  pageSlug: string
  title: string
  description: string
  keywords: string[]
  ogImage?: ImageRef | null
  canonical?: string | null
  noIndex?: boolean
  [key: string]: any
}

export interface NavItem {
  id: string
  label: string
  url: string
  children?: NavItem[]
  [key: string]: any
}

export interface ContentPack {
  version: string
  generatedAt: string | null
  projectId: string
  hash: string
  intakeHash: string
  siteSettings: Record<string, any>
  pages: Page[]
  seo: Seo[]
  legal: Record<string, any>
  navigation: {
    items: NavItem[]
    logoText?: string | null
    logo?: ImageRef | null
    ctaButton?: Cta | null
    [key: string]: any
  }
  footer: Record<string, any>
  components: Record<string, any> | null
}
"""


def content_pack_module(pack: ContentPack) -> str:
    """The canonical ``site.ts``: the whole pack plus convenience exports."""
    data = json.dumps(pack.to_json_dict(), indent=2, ensure_ascii=False)
    generated_at = pack.generated_at.isoformat() if pack.generated_at else "unknown"
    return f"""// Content Pack - single source of truth for all site content
// Generated at: {generated_at}
// Hash: {pack.hash}
import type {{ ContentPack }} from './types'

export const contentPack: ContentPack = {data}

export const siteSettings = contentPack.siteSettings
export const pages = contentPack.pages
export const navigation = contentPack.navigation
export const footer = contentPack.footer
export const seo = contentPack.seo
export const legal = contentPack.legal
export const components = contentPack.components
"""


LIB_UTILS = """import { clsx } from 'clsx'
import type { ClassValue } from 'clsx'
import { twMerge } from 'tailwind-merge'

export function cn(...inputs: ClassValue[]) {
  return twMerge(clsx(inputs))
}
"""

LIB_CONTENT = """import type { Metadata } from 'next'
import { contentPack } from '@/content/site'
import type { NavItem, Page, Seo } from '@/content/types'

export function getPage(slug: string): Page | undefined {
  return contentPack.pages.find((page) => page.slug === slug)
}

export function getSeo(slug: string): Seo | undefined {
  return contentPack.seo.find((entry) => entry.pageSlug === slug)
}

export function buildMetadata(slug: string): Metadata {
  const seo = getSeo(slug)
  const brand = contentPack.siteSettings.brand
  if (!seo) {
    return { title: brand.name, description: brand.shortDescription }
  }
  return {
    title: seo.title,
    description: seo.description,
    keywords: seo.keywords,
    alternates: seo.canonical ? { canonical: seo.canonical } : undefined,
    robots: seo.noIndex ? { index: false, follow: false } : undefined,
    openGraph: {
      title: seo.title,
      description: seo.description,
      images: seo.ogImage ? [{ url: seo.ogImage.src, alt: seo.ogImage.alt }] : undefined,
    },
  }
}

function findLabel(items: NavItem[], url: string): string | undefined {
  for (const item of items) {
    if (item.url === url) return item.label
    const nested = findLabel(item.children ?? [], url)
    if (nested) return nested
  }
  return undefined
}

export function linkLabel(url: string): string | undefined {
  const footerLinks = [
    ...(contentPack.footer.columns ?? []).flatMap((column: { links: NavItem[] }) => column.links),
    ...(contentPack.footer.bottom?.links ?? []),
  ]
  return (
    findLabel(contentPack.navigation.items, url) ??
    footerLinks.find((link: { url: string }) => link.url === url)?.label
  )
}
"""


# =============================================================================
# Layout and app shell
# =============================================================================

ROOT_LAYOUT = """import type { Metadata } from 'next'
import type { ReactNode } from 'react'
import './globals.css'
import { Header } from '@/components/layout/Header'
import { Footer } from '@/components/layout/Footer'
import { buildMetadata } from '@/lib/content'

export const metadata: Metadata = buildMetadata('/')

export default function RootLayout({ children }: { children: ReactNode }) {
  return (
    <html lang="de" suppressHydrationWarning>
      <body className="min-h-screen bg-background font-sans text-foreground antialiased">
        <Header />
        {children}
        <Footer />
      </body>
    </html>
  )
}
"""

HEADER = """import Link from 'next/link'
import { useState } from 'react'
import { Menu, X } from 'lucide-react'
import { navigation, siteSettings } from '@/content/site'
import { cn } from '@/lib/utils'

export function Header() {
  const [open, setOpen] = useState(false)
  const cta = navigation.ctaButton

  return (
    <header className={cn('z-50 border-b bg-background/80 backdrop-blur', navigation.sticky && 'sticky top-0')}>
      <div className="container mx-auto flex h-16 items-center justify-between px-6">
        <Link href="/" className="font-heading text-lg font-bold">
          {navigation.logo ? (
            <img src={navigation.logo.src} alt={navigation.logo.alt} className="h-8 w-auto" />
          ) : (
            navigation.logoText ?? siteSettings.brand.name
          )}
        </Link>
        <nav className="hidden items-center gap-6 md:flex">
          {navigation.items.map((item) => (
            <Link key={item.id} href={item.url} className="text-sm font-medium hover:text-primary">
              {item.label}
            </Link>
          ))}
          {cta ? (
            <Link href={cta.url} className="rounded-lg bg-primary px-4 py-2 text-sm font-semibold text-white">
              {cta.text}
            </Link>
          ) : null}
        </nav>
        <button
          type="button"
          className="md:hidden"
          aria-label={siteSettings.brand.name}
          aria-expanded={open}
          onClick={() => setOpen(!open)}
        >
          {open ? <X className="h-6 w-6" /> : <Menu className="h-6 w-6" />}
        </button>
      </div>
      {open ? (
        <nav className="border-t px-6 py-4 md:hidden">
          {navigation.items.map((item) => (
            <Link key={item.id} href={item.url} className="block py-2" onClick={() => setOpen(false)}>
              {item.label}
            </Link>
          ))}
        </nav>
      ) : null}
    </header>
  )
}
"""

FOOTER = """import Link from 'next/link'
import { footer, siteSettings } from '@/content/site'

type FooterLink = { label: string; url: string; external?: boolean }
type FooterColumn = { id: string; title: string; links: FooterLink[] }

export function Footer() {
  const columns: FooterColumn[] = footer.columns ?? []
  const bottomLinks: FooterLink[] = footer.bottom?.links ?? []

  return (
    <footer className="border-t bg-background-alt">
      <div className="container mx-auto grid gap-10 px-6 py-16 md:grid-cols-4">
        <div>
          <p className="font-heading text-lg font-bold">{siteSettings.brand.name}</p>
          <p className="mt-2 text-sm text-muted">{footer.tagline}</p>
        </div>
        {columns.map((column) => (
          <div key={column.id}>
            <p className="font-semibold">{column.title}</p>
            <ul className="mt-4 space-y-2 text-sm">
              {column.links.map((link) => (
                <li key={link.url}>
                  <Link href={link.url} target={link.external ? '_blank' : undefined} className="text-muted hover:text-primary">
                    {link.label}
                  </Link>
                </li>
              ))}
            </ul>
          </div>
        ))}
      </div>
      <div className="border-t">
        <div className="container mx-auto flex flex-col gap-4 px-6 py-6 text-sm text-muted md:flex-row md:justify-between">
          <p>{footer.bottom?.copyright}</p>
          <nav className="flex gap-4">
            {bottomLinks.map((link) => (
              <Link key={link.url} href={link.url} className="hover:text-primary">
                {link.label}
              </Link>
            ))}
          </nav>
        </div>
      </div>
    </footer>
  )
}
"""

NOT_FOUND_PAGE = """import Link from 'next/link'
import { components } from '@/content/site'

export default function NotFound() {
  const content = components?.notFound
  if (!content) return null

  return (
    <main className="container mx-auto flex min-h-[60vh] flex-col items-center justify-center px-6 text-center">
      <h1 className="font-heading text-4xl font-bold">{content.headline}</h1>
      <p className="mt-4 max-w-xl text-muted">{content.description}</p>
      <Link href={content.cta.url} className="mt-8 rounded-lg bg-primary px-6 py-3 font-semibold text-white">
        {content.cta.text}
      </Link>
    </main>
  )
}
"""

LOADING_PAGE = """import { components } from '@/content/site'

export default function Loading() {
  const content = components?.loading

  return (
    <main className="flex min-h-[60vh] flex-col items-center justify-center gap-4" role="status">
      {content?.showSpinner ? (
        <span className="h-10 w-10 animate-spin rounded-full border-4 border-primary border-t-transparent" />
      ) : null}
      <p className="text-muted">{content?.text}</p>
    </main>
  )
}
"""

ERROR_PAGE = """import { components } from '@/content/site'

export default function ErrorPage({ reset }: { error: Error; reset: () => void }) {
  const content = components?.error

  return (
    <main className="container mx-auto flex min-h-[60vh] flex-col items-center justify-center px-6 text-center">
      <h1 className="font-heading text-3xl font-bold">{content?.headline}</h1>
      <p className="mt-4 max-w-xl text-muted">{content?.description}</p>
      <button type="button" onClick={() => reset()} className="mt-8 rounded-lg bg-primary px-6 py-3 font-semibold text-white">
        {content?.retryCta.text}
      </button>
    </main>
  )
}
"""

REVEAL = """import { motion } from 'framer-motion'
import type { ReactNode } from 'react'

export function Reveal({ children }: { children: ReactNode }) {
  return (
    <motion.div
      initial={{ opacity: 0, y: 24 }}
      whileInView={{ opacity: 1, y: 0 }}
      viewport={{ once: true }}
      transition={{ duration: 0.5 }}
    >
      {children}
    </motion.div>
  )
}
"""


def globals_css(pack: ContentPack) -> str:
    colors = pack.site_settings.colors
    typography = pack.site_settings.typography
    return f"""@tailwind base;
@tailwind components;
@tailwind utilities;

:root {{
  --color-primary: {colors.primary};
  --color-primary-dark: {colors.primary_dark};
  --color-primary-light: {colors.primary_light};
  --color-secondary: {colors.secondary};
  --color-accent: {colors.accent};
  --color-background: {colors.background};
  --color-background-alt: {colors.background_alt};
  --color-foreground: {colors.text};
  --color-muted: {colors.text_muted};
  --font-heading: '{typography.heading_font}', sans-serif;
  --font-body: '{typography.body_font}', sans-serif;
  --font-mono: '{typography.mono_font}', monospace;
}}

.dark {{
  --color-background: {colors.dark.background};
  --color-background-alt: {colors.dark.background_alt};
  --color-foreground: {colors.dark.text};
  --color-muted: {colors.dark.text_muted};
}}

html {{
  scroll-behavior: smooth;
  font-size: {typography.base_font_size}px;
  line-height: {typography.line_height};
}}
"""


TAILWIND_CONFIG = """import type { Config } from 'tailwindcss'

const config: Config = {
  darkMode: 'class',
  content: ['./src/**/*.{ts,tsx}'],
  theme: {
    extend: {
      colors: {
        primary: 'var(--color-primary)',
        'primary-dark': 'var(--color-primary-dark)',
        'primary-light': 'var(--color-primary-light)',
        secondary: 'var(--color-secondary)',
        accent: 'var(--color-accent)',
        background: 'var(--color-background)',
        'background-alt': 'var(--color-background-alt)',
        foreground: 'var(--color-foreground)',
        muted: 'var(--color-muted)',
      },
      fontFamily: {
        sans: ['var(--font-body)'],
        heading: ['var(--font-heading)'],
        mono: ['var(--font-mono)'],
      },
    },
  },
  plugins: [],
}

export default config
"""

NEXT_CONFIG = """/** @type {import('next').NextConfig} */
const nextConfig = {
  reactStrictMode: true,
  images: {
    remotePatterns: [{ protocol: 'https', hostname: '**' }],
  },
}

module.exports = nextConfig
"""

POSTCSS_CONFIG = """module.exports = {
  plugins: {
    tailwindcss: {},
    autoprefixer: {},
  },
}
"""

TSCONFIG = {
    "compilerOptions": {
        "target": "ES2020",
        "lib": ["dom", "dom.iterable", "esnext"],
        "allowJs": False,
        "skipLibCheck": True,
        "strict": True,
        "noEmit": True,
        "esModuleInterop": True,
        "module": "esnext",
        "moduleResolution": "bundler",
        "resolveJsonModule": True,
        "isolatedModules": True,
        "jsx": "preserve",
        "incremental": True,
        "plugins": [{"name": "next"}],
        "paths": {"@/*": ["./src/*"]},
    },
    "include": ["next-env.d.ts", "**/*.ts", "**/*.tsx"],
    "exclude": ["node_modules"],
}


# =============================================================================
# Sections
# =============================================================================

SECTION_HEADER = """import type { Section } from '@/content/types'

export function SectionHeader({ section }: { section: Section }) {
  if (!section.headline && !section.subheadline && !section.eyebrow && !section.description) return null

  return (
    <div className="mx-auto mb-12 max-w-3xl text-center">
      {section.eyebrow ? <p className="text-sm font-semibold uppercase tracking-wide text-primary">{section.eyebrow}</p> : null}
      {section.headline ? <h2 className="mt-2 font-heading text-3xl font-bold sm:text-4xl">{section.headline}</h2> : null}
      {section.subheadline ? <p className="mt-4 text-lg text-muted">{section.subheadline}</p> : null}
      {section.description ? <p className="mt-4 text-muted">{section.description}</p> : null}
    </div>
  )
}
"""

ITEM_GRID = """import Link from 'next/link'
import * as Icons from 'lucide-react'
import type { LucideIcon } from 'lucide-react'
import { cn } from '@/lib/utils'

/* eslint-disable @typescript-eslint/no-explicit-any */
type Item = Record<string, any>

const GRID_COLUMNS: Record<number, string> = {
  1: 'md:grid-cols-1',
  2: 'md:grid-cols-2',
  3: 'md:grid-cols-3',
  4: 'md:grid-cols-4',
}

function itemTitle(item: Item): string | undefined {
  return item.title ?? item.name ?? item.label ?? item.author ?? item.question
}

function itemMeta(item: Item): string | undefined {
  return item.role ?? item.company ?? item.value ?? item.date ?? item.year
}

function itemBody(item: Item): string | undefined {
  return item.description ?? item.shortDescription ?? item.quote ?? item.answer ?? item.bio ?? item.excerpt
}

export function ItemGrid({ items, columns = 3 }: { items: Item[]; columns?: number }) {
  if (!items.length) return null

  return (
    <div className={cn('grid gap-8', GRID_COLUMNS[columns] ?? 'md:grid-cols-3')}>
      {items.map((item, index) => {
        const Icon = item.icon ? (Icons as unknown as Record<string, LucideIcon>)[item.icon] : undefined
        const price = item.price
        const features: string[] = Array.isArray(item.features) ? item.features : []
        return (
          <article key={item.id ?? index} className="rounded-2xl border bg-background p-6 shadow-sm">
            {item.image ? <img src={item.image.src} alt={item.image.alt} className="mb-4 rounded-lg" /> : null}
            {Icon ? <Icon className="mb-4 h-8 w-8 text-primary" /> : null}
            {itemTitle(item) ? <h3 className="font-heading text-lg font-semibold">{itemTitle(item)}</h3> : null}
            {itemMeta(item) ? <p className="text-sm text-muted">{itemMeta(item)}</p> : null}
            {itemBody(item) ? <p className="mt-2 text-muted">{itemBody(item)}</p> : null}
            {price ? (
              <p className="mt-4 text-2xl font-bold">
                {price.customLabel ?? [price.amount, price.currency].filter(Boolean).join(' ')}
              </p>
            ) : null}
            {features.length ? (
              <ul className="mt-4 list-inside list-disc space-y-1 text-sm">
                {features.map((feature) => (
                  <li key={feature}>{feature}</li>
                ))}
              </ul>
            ) : null}
            {item.cta ? (
              <Link href={item.cta.url} className="mt-6 inline-block font-semibold text-primary">
                {item.cta.text}
              </Link>
            ) : null}
          </article>
        )
      })}
    </div>
  )
}
"""

ITEMS_SECTION = """import type { Section } from '@/content/types'
import { ItemGrid } from './ItemGrid'
import { SectionHeader } from './SectionHeader'

export function __NAME__({ section }: { section: Section }) {
  return (
    <section id={section.id} className="py-20">
      <div className="container mx-auto px-6">
        <SectionHeader section={section} />
        <ItemGrid items={section.content.items ?? []} columns={section.content.columns ?? 3} />
      </div>
    </section>
  )
}
"""

HERO_SECTION = """import Link from 'next/link'
import type { Section } from '@/content/types'

export function HeroSection({ section }: { section: Section }) {
  const primaryCta = section.content.primaryCta
  const secondaryCta = section.content.secondaryCta
  const image = section.content.image
  const badges: string[] = section.content.badges ?? []

  return (
    <section id={section.id} className="relative overflow-hidden py-24 sm:py-32">
      <div className="container mx-auto grid gap-12 px-6 lg:grid-cols-2 lg:items-center">
        <div>
          {section.eyebrow ? <p className="text-sm font-semibold uppercase tracking-wide text-primary">{section.eyebrow}</p> : null}
          <h1 className="mt-2 font-heading text-4xl font-bold tracking-tight sm:text-6xl">{section.headline}</h1>
          {section.subheadline ? <p className="mt-6 text-lg text-muted">{section.subheadline}</p> : null}
          {section.description ? <p className="mt-4 text-muted">{section.description}</p> : null}
          <div className="mt-10 flex flex-wrap gap-4">
            {primaryCta ? (
              <Link href={primaryCta.url} className="rounded-lg bg-primary px-6 py-3 font-semibold text-white">
                {primaryCta.text}
              </Link>
            ) : null}
            {secondaryCta ? (
              <Link href={secondaryCta.url} className="rounded-lg border px-6 py-3 font-semibold">
                {secondaryCta.text}
              </Link>
            ) : null}
          </div>
          {badges.length ? (
            <ul className="mt-8 flex flex-wrap gap-3 text-sm text-muted">
              {badges.map((badge) => (
                <li key={badge} className="rounded-full border px-3 py-1">{badge}</li>
              ))}
            </ul>
          ) : null}
        </div>
        {image ? <img src={image.src} alt={image.alt} className="rounded-2xl shadow-xl" /> : null}
      </div>
    </section>
  )
}
"""

CTA_SECTION = """import Link from 'next/link'
import type { Section } from '@/content/types'

export function CtaSection({ section }: { section: Section }) {
  const primaryCta = section.content.primaryCta ?? section.content.cta
  const secondaryCta = section.content.secondaryCta

  return (
    <section id={section.id} className="py-20">
      <div className="container mx-auto px-6">
        <div className="rounded-3xl bg-primary px-8 py-16 text-center text-white">
          {section.headline ? <h2 className="font-heading text-3xl font-bold sm:text-4xl">{section.headline}</h2> : null}
          {section.subheadline ? <p className="mt-4 text-lg opacity-90">{section.subheadline}</p> : null}
          {section.description ? <p className="mt-4 opacity-90">{section.description}</p> : null}
          <div className="mt-8 flex flex-wrap justify-center gap-4">
            {primaryCta ? (
              <Link href={primaryCta.url} className="rounded-lg bg-white px-6 py-3 font-semibold text-primary">
                {primaryCta.text}
              </Link>
            ) : null}
            {secondaryCta ? (
              <Link href={secondaryCta.url} className="rounded-lg border border-white px-6 py-3 font-semibold">
                {secondaryCta.text}
              </Link>
            ) : null}
          </div>
        </div>
      </div>
    </section>
  )
}
"""

FAQ_SECTION = """import type { Section } from '@/content/types'
import { SectionHeader } from './SectionHeader'

type FaqItem = { id: string; question: string; answer: string }

export function FaqSection({ section }: { section: Section }) {
  const items: FaqItem[] = section.content.items ?? []

  return (
    <section id={section.id} className="py-20">
      <div className="container mx-auto max-w-3xl px-6">
        <SectionHeader section={section} />
        <div className="divide-y rounded-2xl border">
          {items.map((item) => (
            <details key={item.id} className="group p-6">
              <summary className="cursor-pointer list-none text-lg font-medium">{item.question}</summary>
              <p className="mt-4 text-muted">{item.answer}</p>
            </details>
          ))}
        </div>
      </div>
    </section>
  )
}
"""

CONTACT_SECTION = """import { useState } from 'react'
import type { FormEvent } from 'react'
import { components, siteSettings } from '@/content/site'
import type { Section } from '@/content/types'
import { SectionHeader } from './SectionHeader'

const SEND_VIA_API = __SEND_VIA_API__

type FormField = {
  id: string
  type: string
  name: string
  label: string
  placeholder?: string | null
  required?: boolean
  options?: string[] | null
}

export function ContactSection({ section }: { section: Section }) {
  const [status, setStatus] = useState('idle')
  const fields: FormField[] = section.content.formFields ?? []
  const submit = section.content.submitButton
  const successMessage = section.content.successMessage ?? components?.toasts.contactSuccess
  const errorMessage = section.content.errorMessage ?? components?.toasts.contactError
  const contact = siteSettings.contact

  async function handleSubmit(event: FormEvent<HTMLFormElement>) {
    event.preventDefault()
    const data = Object.fromEntries(new FormData(event.currentTarget).entries())
    if (!SEND_VIA_API) {
      window.location.href = 'mailto:' + contact.email + '?body=' + encodeURIComponent(JSON.stringify(data, null, 2))
      setStatus('success')
      return
    }
    setStatus('sending')
    try {
      const response = await fetch('/api/contact', {
        method: 'POST',
        headers: { 'Content-Type': 'application/json' },
        body: JSON.stringify(data),
      })
      setStatus(response.ok ? 'success' : 'error')
    } catch {
      setStatus('error')
    }
  }

  return (
    <section id={section.id} className="py-20">
      <div className="container mx-auto grid gap-12 px-6 lg:grid-cols-2">
        <div>
          <SectionHeader section={section} />
          <ul className="space-y-2 text-muted">
            {contact.email ? <li><a href={'mailto:' + contact.email}>{contact.email}</a></li> : null}
            {contact.phone ? <li><a href={'tel:' + contact.phone}>{contact.phone}</a></li> : null}
            {contact.address ? <li>{contact.address.formatted}</li> : null}
          </ul>
        </div>
        <form onSubmit={handleSubmit} className="space-y-4 rounded-2xl border p-8">
          {fields.map((field) => (
            <label key={field.id} className="block">
              <span className="text-sm font-medium">{field.label}</span>
              {field.type === 'textarea' ? (
                <textarea name={field.name} required={field.required} placeholder={field.placeholder ?? undefined} rows={5} className="mt-1 w-full rounded-lg border p-3" />
              ) : field.type === 'select' ? (
                <select name={field.name} required={field.required} className="mt-1 w-full rounded-lg border p-3">
                  {(field.options ?? []).map((option) => (
                    <option key={option} value={option}>{option}</option>
                  ))}
                </select>
              ) : (
                <input type={field.type} name={field.name} required={field.required} placeholder={field.placeholder ?? undefined} className="mt-1 w-full rounded-lg border p-3" />
              )}
            </label>
          ))}
          <button type="submit" disabled={status === 'sending'} className="w-full rounded-lg bg-primary px-6 py-3 font-semibold text-white">
            {submit?.text}
          </button>
          {status === 'success' ? <p role="status" className="text-green-600">{successMessage}</p> : null}
          {status === 'error' ? <p role="alert" className="text-red-600">{errorMessage}</p> : null}
        </form>
      </div>
    </section>
  )
}
"""

NEWSLETTER_SECTION = """import type { Section } from '@/content/types'
import { SectionHeader } from './SectionHeader'

export function NewsletterSection({ section }: { section: Section }) {
  const action: string | undefined = section.content.action
  const button = section.content.buttonText ?? section.content.submitButton?.text

  return (
    <section id={section.id} className="bg-background-alt py-20">
      <div className="container mx-auto max-w-2xl px-6 text-center">
        <SectionHeader section={section} />
        {action ? (
          <form action={action} method="post" className="flex flex-col gap-3 sm:flex-row">
            <input type="email" name="email" required placeholder={section.content.placeholder ?? undefined} className="flex-1 rounded-lg border p-3" />
            <button type="submit" className="rounded-lg bg-primary px-6 py-3 font-semibold text-white">
              {button}
            </button>
          </form>
        ) : null}
      </div>
    </section>
  )
}
"""

SECTION_FAMILIES: Dict[SectionType, str] = {
    SectionType.HERO: HERO_SECTION,
    SectionType.CTA: CTA_SECTION,
    SectionType.FAQ: FAQ_SECTION,
    SectionType.CONTACT: CONTACT_SECTION,
    SectionType.NEWSLETTER: NEWSLETTER_SECTION,
}


def render_section_component(section_type: SectionType, addons: Iterable[str] = ()) -> GeneratedFile:
    name = section_component_name(section_type)
    template = SECTION_FAMILIES.get(section_type, ITEMS_SECTION)
    content = _fill(
        template,
        NAME=name,
        SEND_VIA_API="true" if "booking_form" in addons else "false",
    )
    return GeneratedFile(path=f"src/components/sections/{name}.tsx", content=content, type=FileType.COMPONENT)


def render_section_registry(section_types: List[SectionType]) -> GeneratedFile:
    """``components/sections/index.tsx``: maps section types to components."""
    names = sorted({section_component_name(t) for t in section_types} | {"CustomSection"})
    imports = "\n".join(f"import {{ {name} }} from './{name}'" for name in names)
    entries = "\n".join(
        f"  '{t.value}': {section_component_name(t)},"
        for t in sorted(set(section_types), key=lambda t: t.value)
    )
    content = f"""import type {{ ComponentType }} from 'react'
import type {{ Section }} from '@/content/types'
import {{ Reveal }} from '@/components/ui/Reveal'
{imports}

const SECTION_COMPONENTS: Record<string, ComponentType<{{ section: Section }}>> = {{
{entries}
}}

export function SectionRenderer({{ section }}: {{ section: Section }}) {{
  const Component = SECTION_COMPONENTS[section.type] ?? CustomSection
  if (section.style?.animation === 'none') return <Component section={{section}} />
  return (
    <Reveal>
      <Component section={{section}} />
    </Reveal>
  )
}}
"""
    return GeneratedFile(path="src/components/sections/index.tsx", content=content, type=FileType.COMPONENT)


# =============================================================================
# Pages
# =============================================================================

PAGE = """import type { Metadata } from 'next'
import { notFound } from 'next/navigation'
import { SectionRenderer } from '@/components/sections'
import { buildMetadata, getPage } from '@/lib/content'

const SLUG = __SLUG__

export const metadata: Metadata = buildMetadata(SLUG)

export default function __COMPONENT__() {
  const page = getPage(SLUG)
  if (!page) notFound()

  return (
    <main>
      {[...page.sections]
        .sort((a, b) => a.order - b.order)
        .map((section) => (
          <SectionRenderer key={section.id} section={section} />
        ))}
    </main>
  )
}
"""

IMPRINT_PAGE = """import type { Metadata } from 'next'
import { notFound } from 'next/navigation'
import { legal } from '@/content/site'
import { buildMetadata, linkLabel } from '@/lib/content'

export const metadata: Metadata = buildMetadata(__SLUG__)

export default function ImprintPage() {
  const imprint = legal.imprint
  if (!imprint) notFound()
  const address = imprint.address ?? {}

  return (
    <main className="container mx-auto max-w-3xl px-6 py-20">
      <h1 className="font-heading text-3xl font-bold">{linkLabel(__SLUG__) ?? imprint.companyName}</h1>
      <div className="mt-8 space-y-2">
        <p className="font-semibold">{imprint.companyName}</p>
        {imprint.legalForm ? <p>{imprint.legalForm}</p> : null}
        {imprint.representative ? <p>{imprint.representative}</p> : null}
        <p>{address.formatted || [address.street, address.postalCode, address.city].filter(Boolean).join(', ')}</p>
        {imprint.email ? <p><a href={'mailto:' + imprint.email}>{imprint.email}</a></p> : null}
        {imprint.phone ? <p>{imprint.phone}</p> : null}
        {imprint.vatId ? <p>{imprint.vatId}</p> : null}
        {imprint.registryCourt ? <p>{imprint.registryCourt}</p> : null}
        {imprint.registryNumber ? <p>{imprint.registryNumber}</p> : null}
        {imprint.responsibleForContent ? <p>{imprint.responsibleForContent}</p> : null}
        {imprint.additionalInfo ? <p className="mt-6 text-muted">{imprint.additionalInfo}</p> : null}
      </div>
    </main>
  )
}
"""

LEGAL_TEXT_PAGE = """import type { Metadata } from 'next'
import { notFound } from 'next/navigation'
import { legal } from '@/content/site'
import { buildMetadata, linkLabel } from '@/lib/content'

type LegalSection = { id: string; title: string; content: string }

export const metadata: Metadata = buildMetadata(__SLUG__)

export default function __COMPONENT__() {
  const document = legal.__KEY__
  if (!document) notFound()
  const sections: LegalSection[] = document.sections ?? []

  return (
    <main className="container mx-auto max-w-3xl px-6 py-20">
      <h1 className="font-heading text-3xl font-bold">{linkLabel(__SLUG__)}</h1>
      {document.lastUpdated ? <p className="mt-2 text-sm text-muted">{document.lastUpdated}</p> : null}
      {document.introduction ? <p className="mt-8">{document.introduction}</p> : null}
      {sections.map((section) => (
        <section key={section.id} className="mt-10">
          <h2 className="font-heading text-xl font-semibold">{section.title}</h2>
          <p className="mt-3 whitespace-pre-line text-muted">{section.content}</p>
        </section>
      ))}
      {document.contactInfo ? <p className="mt-10 whitespace-pre-line">{document.contactInfo}</p> : null}
      {document.dpoInfo ? <p className="mt-4 whitespace-pre-line">{document.dpoInfo}</p> : null}
    </main>
  )
}
"""


def _component_name_for(slug: str) -> str:
    words = re.split(r"[^A-Za-z0-9]+", slug)
    name = "".join(w[:1].upper() + w[1:] for w in words if w)
    if not name or name[0].isdigit():
        name = f"Page{name}"
    return f"{name}Page" if name != "Page" else "Page"


def render_page(slug: str) -> GeneratedFile:
    component = "HomePage" if slug == "/" else _component_name_for(slug)
    content = _fill(PAGE, SLUG=json.dumps(slug), COMPONENT=component)
    return GeneratedFile(path=page_file_path(slug), content=content, type=FileType.PAGE)


def render_legal_pages(pack: ContentPack) -> List[GeneratedFile]:
    """Imprint, privacy and terms routes for the legal documents that exist."""
    taken = {p.slug for p in pack.pages}
    files = []
    if pack.legal.imprint is not None and IMPRINT_SLUG not in taken:
        files.append(GeneratedFile(
            path=page_file_path(IMPRINT_SLUG),
            content=_fill(IMPRINT_PAGE, SLUG=json.dumps(IMPRINT_SLUG)),
            type=FileType.PAGE,
        ))
    documents = [
        (PRIVACY_SLUG, "privacy", "PrivacyPage", pack.legal.privacy),
        (TERMS_SLUG, "terms", "TermsPage", pack.legal.terms),
    ]
    for slug, key, component, document in documents:
        if document is None or slug in taken:
            continue
        files.append(GeneratedFile(
            path=page_file_path(slug),
            content=_fill(LEGAL_TEXT_PAGE, SLUG=json.dumps(slug), KEY=key, COMPONENT=component),
            type=FileType.PAGE,
        ))
    return files


# =============================================================================
# Add-on integrations
# =============================================================================

CONTACT_ROUTE = """import { NextResponse } from 'next/server'
import { Resend } from 'resend'
import { siteSettings } from '@/content/site'

const resend = new Resend(process.env.RESEND_API_KEY)

export async function POST(request: Request) {
  const data: Record<string, string> = await request.json()
  const text = Object.entries(data)
    .map(([key, value]) => key + ': ' + value)
    .join('\\n')

  const { error } = await resend.emails.send({
    from: __FROM_ADDRESS__,
    to: process.env.CONTACT_EMAIL ?? siteSettings.contact.email,
    replyTo: data.email,
    subject: siteSettings.brand.name,
    text,
  })

  if (error) {
    return NextResponse.json({ ok: false }, { status: 502 })
  }
  return NextResponse.json({ ok: true })
}
"""

SANITY_CLIENT = """import { createClient } from '@sanity/client'
import imageUrlBuilder from '@sanity/image-url'

export const sanityClient = createClient({
  projectId: process.env.NEXT_PUBLIC_SANITY_PROJECT_ID ?? '',
  dataset: process.env.NEXT_PUBLIC_SANITY_DATASET ?? 'production',
  apiVersion: '2024-01-01',
  useCdn: true,
  token: process.env.SANITY_API_TOKEN,
})

const builder = imageUrlBuilder(sanityClient)

export function urlFor(source: Parameters<typeof builder.image>[0]) {
  return builder.image(source)
}
"""


def render_addon_files(intake: ProjectIntake, addons: Iterable[str]) -> List[GeneratedFile]:
    addons = set(addons)
    files = []
    if "booking_form" in addons:
        sender = f"website@{intake.email_domain}" if intake.email_domain else "onboarding@resend.dev"
        files.append(GeneratedFile(
            path="src/app/api/contact/route.ts",
            content=_fill(CONTACT_ROUTE, FROM_ADDRESS=json.dumps(sender)),
            type=FileType.API,
        ))
    if "cms" in addons:
        files.append(GeneratedFile(path="src/lib/sanity.ts", content=SANITY_CLIENT, type=FileType.UTILITY))
    return files


# =============================================================================
# File groups
# =============================================================================


def render_shell(pack: ContentPack) -> List[GeneratedFile]:
    """Layout, header, footer, 404/loading/error and styles."""
    return [
        GeneratedFile(path="src/app/layout.tsx", content=ROOT_LAYOUT, type=FileType.PAGE),
        GeneratedFile(path="src/app/globals.css", content=globals_css(pack), type=FileType.STYLE),
        GeneratedFile(path="src/app/not-found.tsx", content=NOT_FOUND_PAGE, type=FileType.PAGE),
        GeneratedFile(path="src/app/loading.tsx", content=LOADING_PAGE, type=FileType.PAGE),
        GeneratedFile(path="src/app/error.tsx", content=ERROR_PAGE, type=FileType.PAGE),
        GeneratedFile(path="src/components/layout/Header.tsx", content=HEADER, type=FileType.COMPONENT),
        GeneratedFile(path="src/components/layout/Footer.tsx", content=FOOTER, type=FileType.COMPONENT),
        GeneratedFile(path="src/components/ui/Reveal.tsx", content=REVEAL, type=FileType.COMPONENT),
    ]


def render_sections(pack: ContentPack, addons: Iterable[str]) -> List[GeneratedFile]:
    """One component per section type in use, plus the registry."""
    addons = list(addons)
    used: List[SectionType] = []
    for page in pack.pages:
        for section in page.sections:
            if section.type not in used:
                used.append(section.type)
    if SectionType.CUSTOM not in used:
        used.append(SectionType.CUSTOM)

    files = [
        GeneratedFile(path="src/components/sections/SectionHeader.tsx", content=SECTION_HEADER, type=FileType.COMPONENT),
        GeneratedFile(path="src/components/sections/ItemGrid.tsx", content=ITEM_GRID, type=FileType.COMPONENT),
    ]
    files.extend(render_section_component(t, addons) for t in used)
    files.append(render_section_registry(used))
    return files


def render_pages(pack: ContentPack) -> List[GeneratedFile]:
    """One App Router page per pack page, plus the legal routes."""
    files: Dict[str, GeneratedFile] = {}
    for page in pack.pages:
        if page.slug:
            rendered = render_page(page.slug)
            files.setdefault(rendered.path, rendered)
    for legal_page in render_legal_pages(pack):
        files.setdefault(legal_page.path, legal_page)
    return list(files.values())


def render_support(pack: ContentPack, intake: ProjectIntake, addons: Iterable[str]) -> List[GeneratedFile]:
    """Content module, helpers, add-on integrations and build config."""
    files = [
        GeneratedFile(path=CONTENT_TYPES_PATH, content=CONTENT_TYPES, type=FileType.SCHEMA),
        GeneratedFile(path=CONTENT_DATA_PATH, content=content_pack_module(pack), type=FileType.UTILITY),
        GeneratedFile(path="src/lib/utils.ts", content=LIB_UTILS, type=FileType.UTILITY),
        GeneratedFile(path="src/lib/content.ts", content=LIB_CONTENT, type=FileType.UTILITY),
        GeneratedFile(path="tailwind.config.ts", content=TAILWIND_CONFIG, type=FileType.CONFIG),
        GeneratedFile(path="next.config.js", content=NEXT_CONFIG, type=FileType.CONFIG),
        GeneratedFile(path="postcss.config.js", content=POSTCSS_CONFIG, type=FileType.CONFIG),
        GeneratedFile(path="tsconfig.json", content=json.dumps(TSCONFIG, indent=2) + "\n", type=FileType.CONFIG),
    ]
    files.extend(render_addon_files(intake, addons))
    return files


def package_json(intake: ProjectIntake, dependencies: List[DependencySpec]) -> GeneratedFile:
    name = re.sub(r"[^a-z0-9-]+", "-", intake.name.lower()).strip("-") or intake.id
    runtime = dict(BASE_DEPENDENCIES)
    dev = dict(BASE_DEV_DEPENDENCIES)
    for dep in dependencies:
        (dev if dep.dev else runtime)[dep.name] = dep.version
    manifest = {
        "name": name,
        "version": "0.1.0",
        "private": True,
        "scripts": {
            "dev": "next dev",
            "build": "next build",
            "start": "next start",
            "lint": "next lint",
        },
        "dependencies": dict(sorted(runtime.items())),
        "devDependencies": dict(sorted(dev.items())),
    }
    return GeneratedFile(path="package.json", content=json.dumps(manifest, indent=2) + "\n", type=FileType.CONFIG)


def env_example(env_variables: List[EnvVariable]) -> Optional[GeneratedFile]:
    if not env_variables:
        return None
    lines = []
    for var in env_variables:
        lines.append(f"# {var.description}{'' if var.required else ' (optional)'}")
        lines.append(f"{var.name}={var.value or ''}")
    return GeneratedFile(path=".env.example", content="\n".join(lines) + "\n", type=FileType.CONFIG)
