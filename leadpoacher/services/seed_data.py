"""Fixed inputs for domain discovery."""

STATIC_BUSINESS_DOMAINS: tuple[str, ...] = (
    # industry and technology
    'sap.com', 'siemens.de', 'bosch.de', 'basf.com', 'bayer.de', 'henkel.de', 'thyssenkrupp.com',
    'infineon.com', 'continental.com', 'schaeffler.de', 'zf.com', 'trumpf.com', 'festo.com',
    'kuka.com', 'voith.com', 'heidelberg.com', 'krones.com', 'gea.com', 'durr.com', 'sick.com',
    'phoenixcontact.com', 'wago.com', 'beckhoff.com', 'pilz.com', 'rittal.com', 'harting.com',
    'endress.com', 'sartorius.com', 'carl-zeiss.de', 'jenoptik.com', 'wacker.com', 'evonik.de',
    'covestro.com', 'lanxess.de', 'merckgroup.com', 'fresenius.com', 'draeger.com', 'stihl.de',
    'kaercher.com', 'miele.de', 'vorwerk.de', 'viessmann.de', 'vaillant.de', 'wilo.com', 'ksb.com',
    # automotive and mobility
    'bmw.de', 'mercedes-benz.de', 'volkswagen.de', 'audi.de', 'porsche.de', 'man.eu', 'daimlertruck.com',
    'hella.com', 'mahle.com', 'eberspaecher.com', 'webasto.com', 'brose.com', 'benteler.com',
    # retail and consumer
    'zalando.de', 'otto.de', 'mediamarkt.de', 'saturn.de', 'dm.de', 'rossmann.de', 'lidl.de',
    'aldi-sued.de', 'edeka.de', 'rewe.de', 'tchibo.de', 'douglas.de', 'hugoboss.com', 'adidas.de',
    'puma.com', 'tom-tailor.de', 'esprit.de', 'hornbach.de', 'obi.de', 'bauhaus.info', 'ikea.de',
    'thalia.de', 'hellofresh.de', 'about-you.de', 'check24.de', 'idealo.de',
    # software, internet and services
    'teamviewer.com', 'software-ag.com', 'datev.de', 'nemetschek.com', 'atoss.com', 'personio.de',
    'celonis.com', 'contentful.com', 'n26.com', 'trade-republic.com', 'ionos.de', 'strato.de',
    'hetzner.com', 'united-internet.de', 'gmx.net', 'web.de', 'xing.com', 'stepstone.de',
    'immobilienscout24.de', 'mobile.de', 'autoscout24.de', 'chrono24.de', 'flixbus.de',
    'delivery-hero.com', 'rocket-internet.com', 'shopware.com', 'jimdo.com', 'sevdesk.de',
    'lexoffice.de', 'billomat.com', 'weclapp.com', 'haufe.de', 'cancom.de', 'bechtle.com',
    'adesso.de', 'msg.group', 'materna.de', 'gft.com', 'allgeier.com', 'nagarro.com',
    # finance, insurance, logistics, energy
    'allianz.de', 'munichre.com', 'hannover-re.com', 'ergo.de', 'debeka.de', 'deutsche-bank.de',
    'commerzbank.de', 'dkb.de', 'ing.de', 'comdirect.de', 'dhl.de', 'hermesworld.com', 'dpd.com',
    'gls-group.eu', 'db-schenker.com', 'hapag-lloyd.com', 'lufthansa.com', 'eon.de', 'rwe.com',
    'enbw.com', 'vattenfall.de', 'uniper.energy', 'telekom.de', 'vodafone.de', 'o2online.de',
)

FALLBACK_API_DOMAINS: tuple[str, ...] = (
    'siemens.de', 'bosch.de', 'sap.com', 'telekom.de', 'allianz.de', 'basf.com', 'bmw.de',
    'otto.de', 'zalando.de', 'datev.de', 'personio.de', 'ionos.de', 'hetzner.com', 'check24.de',
)

# Business registers, chambers, associations and directories whose pages link out to companies
CRAWL_SEEDS: tuple[str, ...] = (
    'https://www.unternehmensregister.de/',
    'https://www.bundesanzeiger.de/',
    'https://www.dihk.de/',
    'https://www.ihk.de/',
    'https://bdi.eu/',
    'https://www.vdma.org/',
    'https://www.bitkom.org/',
    'https://www.gelbeseiten.de/',
    'https://www.wlw.de/',
    'https://www.firmenwissen.de/',
    'https://www.deutsche-startups.de/',
    'https://www.startupdetector.de/',
)

NON_BUSINESS_HOSTS: tuple[str, ...] = (
    'google.com', 'google.de', 'googleapis.com', 'gstatic.com', 'facebook.com', 'instagram.com',
    'twitter.com', 'x.com', 'linkedin.com', 'xing.com', 'youtube.com', 'tiktok.com', 'pinterest.com',
    'wikipedia.org', 'w3.org', 'schema.org', 'apple.com', 'microsoft.com', 'cloudflare.com',
    'jsdelivr.net', 'doubleclick.net', 'bund.de',
)

ALLOWED_CRAWL_TLDS: tuple[str, ...] = ('de', 'at', 'ch', 'eu', 'com')
